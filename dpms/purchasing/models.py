from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import models


TWO_PLACES = Decimal('0.01')


class DocumentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    APPROVED = 'APPROVED', 'Approved'
    REJECTED = 'REJECTED', 'Rejected'


class PurchaseIndent(models.Model):
    """Internal request to procure, repair or modify items"""
    TYPE_CHOICES = [
        ('NEW', 'New'),
        ('REPAIR', 'Repair'),
        ('CORRECTION', 'Correction'),
        ('MODIFICATION', 'Modification'),
    ]

    pi_no = models.CharField(max_length=30)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='NEW')
    status = models.CharField(max_length=20, choices=DocumentStatus.choices, default=DocumentStatus.PENDING)
    remarks = models.TextField(blank=True, null=True)
    location = models.ForeignKey('locations.Location', on_delete=models.PROTECT, related_name='purchase_indents')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_indents'
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_indents'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.pi_no

    class Meta:
        db_table = 'purchase_indents'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['location', 'pi_no'], name='uniq_pi_no_per_location'),
        ]
        indexes = [
            models.Index(fields=['location', 'status'], name='idx_pi_location_status'),
        ]


class PurchaseIndentItem(models.Model):
    purchase_indent = models.ForeignKey(PurchaseIndent, on_delete=models.CASCADE, related_name='items')
    item = models.ForeignKey('catalog.Item', on_delete=models.PROTECT, related_name='pi_items')
    remarks = models.TextField(blank=True, null=True)

    def __str__(self):
        return f"{self.purchase_indent.pi_no} - {self.item}"

    def active_po_item(self):
        """The PO line currently holding this PI line, if any"""
        return self.po_items.filter(
            purchase_order__is_active=True
        ).exclude(purchase_order__status=DocumentStatus.REJECTED).select_related('purchase_order').first()

    class Meta:
        db_table = 'purchase_indent_items'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['purchase_indent', 'item'], name='uniq_pi_item'),
        ]


class PurchaseOrder(models.Model):
    """Order placed with a vendor for approved indent lines"""
    GST_TYPE_CHOICES = [
        ('CGST_SGST', 'CGST + SGST'),
        ('IGST', 'IGST'),
        ('UGST', 'UGST'),
    ]

    po_no = models.CharField(max_length=30)
    vendor = models.ForeignKey('parties.Party', on_delete=models.PROTECT, related_name='purchase_orders')
    delivery_date = models.DateField(null=True, blank=True)
    quotation_no = models.CharField(max_length=100, blank=True, null=True)
    quotation_urls = models.JSONField(default=list, blank=True)
    gst_type = models.CharField(max_length=20, choices=GST_TYPE_CHOICES, blank=True, null=True)
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    remarks = models.TextField(blank=True, null=True)
    purchase_type = models.CharField(max_length=50, blank=True, null=True)
    status = models.CharField(max_length=20, choices=DocumentStatus.choices, default=DocumentStatus.PENDING)
    location = models.ForeignKey('locations.Location', on_delete=models.PROTECT, related_name='purchase_orders')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_orders'
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_orders'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.po_no

    def get_subtotal(self):
        """Sum of line rates"""
        return sum((line.rate for line in self.items.all()), Decimal('0'))

    def get_gst_amount(self):
        if self.gst_percent is None:
            return Decimal('0.00')
        amount = self.get_subtotal() * Decimal(self.gst_percent) / Decimal('100')
        return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    def get_total(self):
        return (self.get_subtotal() + self.get_gst_amount()).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    @property
    def has_inward(self):
        from dpms.inventory.models import InwardLine

        return InwardLine.objects.filter(
            source_type='PO', source_ref_id=self.id, inward__is_active=True
        ).exists()

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['location', 'po_no'], name='uniq_po_no_per_location'),
        ]
        indexes = [
            models.Index(fields=['location', 'status'], name='idx_po_location_status'),
            models.Index(fields=['vendor', 'status'], name='idx_po_vendor_status'),
        ]


class PurchaseOrderItem(models.Model):
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    purchase_indent_item = models.ForeignKey(
        PurchaseIndentItem, on_delete=models.PROTECT, related_name='po_items'
    )
    rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.purchase_order.po_no} - {self.purchase_indent_item.item}"

    @property
    def item(self):
        return self.purchase_indent_item.item

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']
