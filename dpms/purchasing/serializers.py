from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from dpms.catalog.models import Item, ItemProcessState
from dpms.catalog.state import can_add_to_pi, describe_state
from dpms.core.numbering import generate_code
from dpms.parties.models import Party
from .models import (
    DocumentStatus, PurchaseIndent, PurchaseIndentItem, PurchaseOrder, PurchaseOrderItem,
)


class PurchaseIndentItemSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.main_part_name', read_only=True)
    current_name = serializers.CharField(source='item.current_name', read_only=True)
    drawing_no = serializers.CharField(source='item.drawing_no', read_only=True)
    revision_no = serializers.CharField(source='item.revision_no', read_only=True)
    item_type_name = serializers.CharField(source='item.item_type.name', read_only=True)
    material_name = serializers.CharField(source='item.material.name', read_only=True)
    current_process = serializers.CharField(source='item.current_process', read_only=True)
    pi_no = serializers.CharField(source='purchase_indent.pi_no', read_only=True)
    pi_status = serializers.CharField(source='purchase_indent.status', read_only=True)
    po_no = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseIndentItem
        fields = ['id', 'purchase_indent', 'pi_no', 'pi_status', 'item', 'item_name', 'current_name',
                  'drawing_no', 'revision_no', 'item_type_name', 'material_name', 'current_process',
                  'remarks', 'po_no']

    def get_po_no(self, obj):
        po_item = obj.active_po_item()
        return po_item.purchase_order.po_no if po_item else None


class PurchaseIndentSerializer(serializers.ModelSerializer):
    """Purchase indent with its lines. Writes take `item_ids` and move items between states."""
    items = PurchaseIndentItemSerializer(many=True, read_only=True)
    item_ids = serializers.ListField(child=serializers.IntegerField(), write_only=True, required=False)
    location_name = serializers.CharField(source='location.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True, default=None)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseIndent
        fields = [
            'id', 'pi_no', 'type', 'status', 'remarks', 'location', 'location_name', 'created_by',
            'created_by_username', 'approved_by', 'approved_by_username', 'approved_at', 'is_active',
            'items', 'item_ids', 'item_count', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'pi_no', 'status', 'location', 'created_by', 'approved_by', 'approved_at', 'is_active',
            'created_at', 'updated_at',
        ]

    def get_item_count(self, obj):
        return obj.items.count()

    def validate_item_ids(self, value):
        ids = list(dict.fromkeys(value))
        if not ids:
            raise serializers.ValidationError('At least one item is required')

        items = {item.id: item for item in Item.objects.filter(id__in=ids)}
        location = self.context.get('location')
        for item_id in ids:
            item = items.get(item_id)
            if item is None:
                raise serializers.ValidationError(f'Item {item_id} does not exist')
            if location is not None and item.location_id != location.id:
                raise serializers.ValidationError(f"Item '{item.current_name}' belongs to another location")
            if not can_add_to_pi(item, exclude_pi=self.instance):
                raise serializers.ValidationError(
                    f"Item '{item.current_name}' is {describe_state(item.current_process)} and cannot be added to a purchase indent"
                )
        return [items[item_id] for item_id in ids]

    def validate(self, attrs):
        if self.instance is None and 'item_ids' not in attrs:
            raise serializers.ValidationError({'item_ids': 'At least one item is required'})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        items = validated_data.pop('item_ids')
        location = self.context['location']
        indent = PurchaseIndent.objects.create(
            pi_no=generate_code('PI', PurchaseIndent, 'pi_no', location),
            location=location,
            created_by=self.context.get('user'),
            **validated_data,
        )
        for item in items:
            PurchaseIndentItem.objects.create(purchase_indent=indent, item=item)
            item.set_state(ItemProcessState.IN_PI)
        return indent

    @transaction.atomic
    def update(self, instance, validated_data):
        items = validated_data.pop('item_ids', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if items is not None:
            wanted = {item.id: item for item in items}
            for line in instance.items.select_related('item'):
                if line.item_id not in wanted:
                    line.item.set_state(ItemProcessState.NOT_IN_STOCK)
                    line.delete()
                else:
                    wanted.pop(line.item_id)
            for item in wanted.values():
                PurchaseIndentItem.objects.create(purchase_indent=instance, item=item)
                item.set_state(ItemProcessState.IN_PI)
        return instance


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    item_id = serializers.IntegerField(source='purchase_indent_item.item_id', read_only=True)
    item_name = serializers.CharField(source='purchase_indent_item.item.main_part_name', read_only=True)
    current_name = serializers.CharField(source='purchase_indent_item.item.current_name', read_only=True)
    drawing_no = serializers.CharField(source='purchase_indent_item.item.drawing_no', read_only=True)
    revision_no = serializers.CharField(source='purchase_indent_item.item.revision_no', read_only=True)
    item_type_name = serializers.CharField(source='purchase_indent_item.item.item_type.name', read_only=True)
    material_name = serializers.CharField(source='purchase_indent_item.item.material.name', read_only=True)
    current_process = serializers.CharField(source='purchase_indent_item.item.current_process', read_only=True)
    pi_no = serializers.CharField(source='purchase_indent_item.purchase_indent.pi_no', read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = ['id', 'purchase_indent_item', 'pi_no', 'item_id', 'item_name', 'current_name', 'drawing_no',
                  'revision_no', 'item_type_name', 'material_name', 'current_process', 'rate']


class PurchaseOrderLineInputSerializer(serializers.Serializer):
    purchase_indent_item_id = serializers.IntegerField()
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))


class PurchaseOrderSerializer(serializers.ModelSerializer):
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    lines = PurchaseOrderLineInputSerializer(many=True, write_only=True, required=False)
    vendor_id = serializers.PrimaryKeyRelatedField(
        source='vendor', queryset=Party.objects.all(), write_only=True, required=False
    )
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True, default=None)
    subtotal = serializers.SerializerMethodField()
    gst_amount = serializers.SerializerMethodField()
    total_amount = serializers.SerializerMethodField()
    has_inward = serializers.BooleanField(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_no', 'vendor', 'vendor_id', 'vendor_name', 'delivery_date', 'quotation_no',
            'quotation_urls', 'gst_type', 'gst_percent', 'remarks', 'purchase_type', 'status', 'location',
            'location_name', 'created_by', 'created_by_username', 'approved_by', 'approved_by_username',
            'approved_at', 'is_active', 'items', 'lines', 'subtotal', 'gst_amount', 'total_amount',
            'has_inward', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'po_no', 'vendor', 'status', 'location', 'created_by', 'approved_by', 'approved_at', 'is_active',
            'created_at', 'updated_at',
        ]

    def to_internal_value(self, data):
        # Clients send the lines under `items`
        if hasattr(data, 'copy') and 'items' in data and 'lines' not in data:
            data = data.copy()
            data['lines'] = data.pop('items')
        return super().to_internal_value(data)

    def get_subtotal(self, obj):
        return str(obj.get_subtotal().quantize(Decimal('0.01')))

    def get_gst_amount(self, obj):
        return str(obj.get_gst_amount())

    def get_total_amount(self, obj):
        return str(obj.get_total())

    def validate_vendor_id(self, value):
        if not value.is_active:
            raise serializers.ValidationError(f"Vendor '{value.name}' is inactive")
        return value

    def validate_gst_percent(self, value):
        if value is not None and (value < 0 or value > 100):
            raise serializers.ValidationError('GST percent must be between 0 and 100')
        return value

    def validate_quotation_urls(self, value):
        if value in (None, ''):
            return []
        if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
            raise serializers.ValidationError('Quotation URLs must be a list of strings')
        return value

    def validate_lines(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        ids = [line['purchase_indent_item_id'] for line in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError('The same indent line appears more than once')

        pi_lines = {
            line.id: line for line in PurchaseIndentItem.objects.select_related('purchase_indent', 'item')
            .filter(id__in=ids)
        }
        location = self.context.get('location')
        resolved = []
        for line in value:
            pi_line = pi_lines.get(line['purchase_indent_item_id'])
            if pi_line is None:
                raise serializers.ValidationError(f"Indent line {line['purchase_indent_item_id']} does not exist")
            indent = pi_line.purchase_indent
            if not indent.is_active or indent.status != DocumentStatus.APPROVED:
                raise serializers.ValidationError(f"Purchase indent {indent.pi_no} is not approved")
            if location is not None and indent.location_id != location.id:
                raise serializers.ValidationError(f"Purchase indent {indent.pi_no} belongs to another location")
            holder = pi_line.active_po_item()
            if holder and (self.instance is None or holder.purchase_order_id != self.instance.id):
                raise serializers.ValidationError(
                    f"Item '{pi_line.item.current_name}' is already on purchase order {holder.purchase_order.po_no}"
                )
            resolved.append((pi_line, line['rate']))
        return resolved

    def validate(self, attrs):
        if self.instance is None:
            if 'vendor' not in attrs:
                raise serializers.ValidationError({'vendor_id': 'Vendor is required'})
            if 'lines' not in attrs:
                raise serializers.ValidationError({'items': 'At least one item is required'})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        lines = validated_data.pop('lines')
        location = self.context['location']
        order = PurchaseOrder.objects.create(
            po_no=generate_code('PO', PurchaseOrder, 'po_no', location),
            location=location,
            created_by=self.context.get('user'),
            **validated_data,
        )
        for pi_line, rate in lines:
            PurchaseOrderItem.objects.create(purchase_order=order, purchase_indent_item=pi_line, rate=rate)
            pi_line.item.set_state(ItemProcessState.IN_PO)
        return order

    @transaction.atomic
    def update(self, instance, validated_data):
        lines = validated_data.pop('lines', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if lines is not None:
            wanted = {pi_line.id: (pi_line, rate) for pi_line, rate in lines}
            for po_line in instance.items.select_related('purchase_indent_item__item'):
                if po_line.purchase_indent_item_id in wanted:
                    _pi_line, rate = wanted.pop(po_line.purchase_indent_item_id)
                    if po_line.rate != rate:
                        po_line.rate = rate
                        po_line.save(update_fields=['rate'])
                else:
                    po_line.purchase_indent_item.item.set_state(ItemProcessState.IN_PI)
                    po_line.delete()
            for pi_line, rate in wanted.values():
                PurchaseOrderItem.objects.create(purchase_order=instance, purchase_indent_item=pi_line, rate=rate)
                pi_line.item.set_state(ItemProcessState.IN_PO)
        return instance
