from django.conf import settings
from django.db import models


class MasterBase(models.Model):
    """Simple lookup table: unique name plus active flag"""
    name = models.CharField(max_length=150, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        abstract = True
        ordering = ['name']


class ItemType(MasterBase):
    """Die, pattern, fixture, ..."""

    class Meta(MasterBase.Meta):
        db_table = 'item_types'


class Material(MasterBase):
    class Meta(MasterBase.Meta):
        db_table = 'materials'


class OwnerType(MasterBase):
    """Who owns the tooling (company, customer, ...)"""

    class Meta(MasterBase.Meta):
        db_table = 'owner_types'


class ItemStatus(MasterBase):
    class Meta(MasterBase.Meta):
        db_table = 'item_statuses'
        verbose_name_plural = 'item statuses'


class ItemProcessState(models.TextChoices):
    NOT_IN_STOCK = 'NOT_IN_STOCK', 'Not In Stock'
    IN_PI = 'IN_PI', 'In Purchase Indent'
    IN_PO = 'IN_PO', 'In Purchase Order'
    IN_QC = 'IN_QC', 'In QC'
    IN_JOBWORK = 'IN_JOBWORK', 'In Job Work'
    OUTWARD = 'OUTWARD', 'Outward'
    IN_STOCK = 'IN_STOCK', 'In Stock'


class Item(models.Model):
    """A die or pattern tracked through procurement, movement and QC"""
    main_part_name = models.CharField(max_length=200, unique=True)
    current_name = models.CharField(max_length=200)
    item_type = models.ForeignKey(ItemType, on_delete=models.PROTECT, related_name='items')
    drawing_no = models.CharField(max_length=100, blank=True, null=True)
    revision_no = models.CharField(max_length=50, blank=True, null=True)
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name='items')
    owner_type = models.ForeignKey(OwnerType, on_delete=models.PROTECT, related_name='items')
    status = models.ForeignKey(ItemStatus, on_delete=models.PROTECT, related_name='items')
    location = models.ForeignKey('locations.Location', on_delete=models.PROTECT, related_name='items')
    current_process = models.CharField(
        max_length=20, choices=ItemProcessState.choices, default=ItemProcessState.NOT_IN_STOCK
    )
    current_location = models.ForeignKey(
        'locations.Location', on_delete=models.SET_NULL, null=True, blank=True, related_name='held_items'
    )
    current_party = models.ForeignKey(
        'parties.Party', on_delete=models.SET_NULL, null=True, blank=True, related_name='held_items'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.current_name or self.main_part_name

    @property
    def holder_name(self):
        if self.current_party_id:
            return self.current_party.name
        if self.current_location_id:
            return self.current_location.name
        return None

    def set_state(self, state, location=None, party=None):
        """Move the item to a process state and record who holds it"""
        self.current_process = state
        self.current_location = location
        self.current_party = party
        self.save(update_fields=['current_process', 'current_location', 'current_party', 'updated_at'])

    class Meta:
        db_table = 'items'
        ordering = ['main_part_name']
        constraints = [
            models.UniqueConstraint(
                fields=['drawing_no'],
                condition=models.Q(drawing_no__isnull=False) & ~models.Q(drawing_no=''),
                name='uniq_item_drawing_no',
            ),
        ]
        indexes = [
            models.Index(fields=['current_process'], name='idx_item_process'),
            models.Index(fields=['location', 'is_active'], name='idx_item_location_active'),
            models.Index(fields=['current_name'], name='idx_item_current_name'),
        ]


class ItemChangeLog(models.Model):
    """Rename/revision history of an item"""
    CHANGE_TYPE_CHOICES = [
        ('MODIFICATION', 'Modification'),
        ('REPAIR', 'Repair'),
    ]

    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name='change_logs')
    old_name = models.CharField(max_length=200)
    new_name = models.CharField(max_length=200)
    old_revision = models.CharField(max_length=50, blank=True, null=True)
    new_revision = models.CharField(max_length=50, blank=True, null=True)
    change_type = models.CharField(max_length=20, choices=CHANGE_TYPE_CHOICES)
    remarks = models.TextField(blank=True, null=True)
    is_reverted = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='item_changes'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.old_name} -> {self.new_name}"

    class Meta:
        db_table = 'item_change_logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['item', '-created_at'], name='idx_changelog_item_date'),
        ]
