from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from dpms.catalog.models import Item, ItemProcessState
from dpms.catalog.state import describe_state, is_in_stock
from dpms.core.numbering import generate_code
from dpms.parties.models import Party
from dpms.purchasing.models import DocumentStatus, PurchaseOrder, PurchaseOrderItem
from .models import Inward, InwardLine, Outward, OutwardLine, JobWork, JobWorkItem


def _active_party(value, label='Party'):
    if not value.is_active:
        raise serializers.ValidationError(f"{label} '{value.name}' is inactive")
    return value


def _url_list(value):
    if value in (None, ''):
        return []
    if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
        raise serializers.ValidationError('Expected a list of URLs')
    return value


# ==================== INWARD ====================

class InwardLineSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.main_part_name', read_only=True)
    current_name = serializers.CharField(source='item.current_name', read_only=True)
    current_process = serializers.CharField(source='item.current_process', read_only=True)
    source_no = serializers.SerializerMethodField()

    class Meta:
        model = InwardLine
        fields = [
            'id', 'item', 'item_name', 'current_name', 'current_process', 'quantity', 'source_type',
            'source_ref_id', 'source_no', 'remarks', 'item_type_name', 'material_name', 'drawing_no',
            'revision_no', 'rate', 'gst_percent', 'is_qc_pending', 'is_qc_approved',
        ]

    def get_source_no(self, obj):
        if obj.source_ref_id is None:
            return None
        model, field = {
            'PO': (PurchaseOrder, 'po_no'),
            'OUTWARD_RETURN': (Outward, 'outward_no'),
            'JOB_WORK': (JobWork, 'job_work_no'),
        }[obj.source_type]
        return model.objects.filter(pk=obj.source_ref_id).values_list(field, flat=True).first()


class InwardLineInputSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    source_type = serializers.ChoiceField(choices=InwardLine.SOURCE_CHOICES)
    source_ref_id = serializers.IntegerField(required=False, allow_null=True)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class InwardSerializer(serializers.ModelSerializer):
    """
    Inward with its lines.

    Every line names where the item comes back from; the source is checked
    against the item's current state so an item can only be received through
    the flow that sent it out.
    """
    lines = InwardLineSerializer(many=True, read_only=True)
    line_items = InwardLineInputSerializer(many=True, write_only=True, required=False)
    vendor_id = serializers.PrimaryKeyRelatedField(
        source='vendor', queryset=Party.objects.all(), write_only=True, required=False, allow_null=True
    )
    vendor_name = serializers.CharField(source='vendor.name', read_only=True, default=None)
    location_name = serializers.CharField(source='location.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Inward
        fields = [
            'id', 'inward_no', 'inward_date', 'location', 'location_name', 'vendor', 'vendor_id',
            'vendor_name', 'remarks', 'status', 'attachment_urls', 'submitted_at', 'created_by',
            'created_by_username', 'is_active', 'lines', 'line_items', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'inward_no', 'location', 'vendor', 'status', 'submitted_at', 'created_by', 'is_active',
            'created_at', 'updated_at',
        ]

    def to_internal_value(self, data):
        # Clients send the lines under `items`
        if hasattr(data, 'copy') and 'items' in data and 'line_items' not in data:
            data = data.copy()
            data['line_items'] = data.pop('items')
        return super().to_internal_value(data)

    def validate_vendor_id(self, value):
        return _active_party(value, 'Vendor') if value else value

    def validate_attachment_urls(self, value):
        return _url_list(value)

    def validate_line_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        item_ids = [line['item_id'] for line in value]
        if len(item_ids) != len(set(item_ids)):
            raise serializers.ValidationError('An item can appear only once in an inward')

        items = {item.id: item for item in Item.objects.select_related('item_type', 'material').filter(id__in=item_ids)}
        location = self.context.get('location')
        busy = InwardLine.objects.filter(
            item_id__in=item_ids, inward__is_active=True, inward__status='DRAFT'
        )
        if self.instance is not None:
            busy = busy.exclude(inward=self.instance)
        busy = dict(busy.values_list('item_id', 'inward__inward_no'))

        resolved = []
        for line in value:
            item = items.get(line['item_id'])
            if item is None:
                raise serializers.ValidationError(f"Item {line['item_id']} does not exist")
            if item.id in busy:
                raise serializers.ValidationError(f"Item '{item.current_name}' is already on draft inward {busy[item.id]}")
            line = dict(line, item=item)
            line.update(check_inward_source(item, line['source_type'], line.get('source_ref_id'), location))
            resolved.append(line)
        return resolved

    def validate(self, attrs):
        if self.instance is None and 'line_items' not in attrs:
            raise serializers.ValidationError({'items': 'At least one item is required'})
        return attrs

    def _create_lines(self, inward, lines):
        for line in lines:
            item = line['item']
            InwardLine.objects.create(
                inward=inward,
                item=item,
                quantity=line.get('quantity', 1),
                source_type=line['source_type'],
                source_ref_id=line.get('source_ref_id'),
                remarks=line.get('remarks'),
                item_type_name=item.item_type.name,
                material_name=item.material.name,
                drawing_no=item.drawing_no,
                revision_no=item.revision_no,
                rate=line.get('rate'),
                gst_percent=line.get('gst_percent'),
            )

    @transaction.atomic
    def create(self, validated_data):
        lines = validated_data.pop('line_items')
        location = self.context['location']
        inward = Inward.objects.create(
            inward_no=generate_code('INW', Inward, 'inward_no', location),
            location=location,
            created_by=self.context.get('user'),
            **validated_data,
        )
        self._create_lines(inward, lines)
        return inward

    @transaction.atomic
    def update(self, instance, validated_data):
        lines = validated_data.pop('line_items', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if lines is not None:
            instance.lines.all().delete()
            self._create_lines(instance, lines)
        return instance


def check_inward_source(item, source_type, source_ref_id, location=None):
    """
    Check that `item` can come back through `source_type`.

    Returns the extra line values (resolved ref id, rate, gst%) or raises
    ValidationError with a message naming the item.
    """
    name = item.current_name
    if source_type == 'PO':
        if item.current_process != ItemProcessState.IN_PO:
            raise serializers.ValidationError(f"Item '{name}' is {describe_state(item.current_process)}, not on a purchase order")
        po_lines = PurchaseOrderItem.objects.select_related('purchase_order').filter(
            purchase_indent_item__item=item,
            purchase_order__is_active=True,
            purchase_order__status=DocumentStatus.APPROVED,
        )
        if source_ref_id:
            po_lines = po_lines.filter(purchase_order_id=source_ref_id)
        if location is not None:
            po_lines = po_lines.filter(purchase_order__location=location)
        po_line = po_lines.order_by('-purchase_order__created_at').first()
        if po_line is None:
            raise serializers.ValidationError(f"Item '{name}' is not on an approved purchase order")
        return {
            'source_ref_id': po_line.purchase_order_id,
            'rate': po_line.rate,
            'gst_percent': po_line.purchase_order.gst_percent,
        }

    if source_type == 'OUTWARD_RETURN':
        if item.current_process != ItemProcessState.OUTWARD:
            raise serializers.ValidationError(f"Item '{name}' is {describe_state(item.current_process)}, not outward")
        outward_lines = OutwardLine.objects.filter(item=item, outward__is_active=True)
        if source_ref_id:
            outward_lines = outward_lines.filter(outward_id=source_ref_id)
        outward_line = outward_lines.order_by('-outward__outward_date', '-outward_id').first()
        if outward_line is None:
            raise serializers.ValidationError(f"Item '{name}' was not sent out on that outward")
        return {'source_ref_id': outward_line.outward_id, 'rate': None, 'gst_percent': None}

    if source_type == 'JOB_WORK':
        if item.current_process != ItemProcessState.IN_JOBWORK:
            raise serializers.ValidationError(f"Item '{name}' is {describe_state(item.current_process)}, not in job work")
        jw_items = JobWorkItem.objects.select_related('job_work').filter(
            item=item, job_work__is_active=True
        ).exclude(job_work__status='COMPLETED')
        if source_ref_id:
            jw_items = jw_items.filter(job_work_id=source_ref_id)
        jw_item = jw_items.order_by('-job_work__created_at').first()
        if jw_item is None:
            raise serializers.ValidationError(f"Item '{name}' is not on an open job work")
        return {'source_ref_id': jw_item.job_work_id, 'rate': jw_item.rate, 'gst_percent': jw_item.gst_percent}

    raise serializers.ValidationError(f"Unknown source type '{source_type}'")


# ==================== OUTWARD ====================

class OutwardLineSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.main_part_name', read_only=True)
    current_name = serializers.CharField(source='item.current_name', read_only=True)
    drawing_no = serializers.CharField(source='item.drawing_no', read_only=True)
    current_process = serializers.CharField(source='item.current_process', read_only=True)

    class Meta:
        model = OutwardLine
        fields = ['id', 'item', 'item_name', 'current_name', 'drawing_no', 'current_process', 'quantity', 'remarks']


class OutwardLineInputSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def _in_stock_items(item_ids, location):
    """Load items for a movement, all of which must be in stock at `location`"""
    if len(item_ids) != len(set(item_ids)):
        raise serializers.ValidationError('An item can appear only once')
    items = {item.id: item for item in Item.objects.filter(id__in=item_ids)}
    for item_id in item_ids:
        item = items.get(item_id)
        if item is None:
            raise serializers.ValidationError(f'Item {item_id} does not exist')
        if not is_in_stock(item):
            raise serializers.ValidationError(
                f"Item '{item.current_name}' is {describe_state(item.current_process)}, only in-stock items can be moved"
            )
        if location is not None and item.current_location_id != location.id:
            raise serializers.ValidationError(f"Item '{item.current_name}' is not in stock at {location.name}")
    return items


class OutwardSerializer(serializers.ModelSerializer):
    lines = OutwardLineSerializer(many=True, read_only=True)
    line_items = OutwardLineInputSerializer(many=True, write_only=True)
    party_id = serializers.PrimaryKeyRelatedField(source='party', queryset=Party.objects.all(), write_only=True)
    party_name = serializers.CharField(source='party.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Outward
        fields = [
            'id', 'outward_no', 'outward_date', 'location', 'location_name', 'party', 'party_id', 'party_name',
            'remarks', 'created_by', 'created_by_username', 'is_active', 'lines', 'line_items',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['outward_no', 'location', 'party', 'created_by', 'is_active', 'created_at', 'updated_at']

    def to_internal_value(self, data):
        if hasattr(data, 'copy') and 'items' in data and 'line_items' not in data:
            data = data.copy()
            data['line_items'] = data.pop('items')
        return super().to_internal_value(data)

    def validate_party_id(self, value):
        return _active_party(value)

    def validate_line_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        items = _in_stock_items([line['item_id'] for line in value], self.context.get('location'))
        return [dict(line, item=items[line['item_id']]) for line in value]

    @transaction.atomic
    def create(self, validated_data):
        lines = validated_data.pop('line_items')
        location = self.context['location']
        outward = Outward.objects.create(
            outward_no=generate_code('OUT', Outward, 'outward_no', location),
            location=location,
            created_by=self.context.get('user'),
            **validated_data,
        )
        for line in lines:
            OutwardLine.objects.create(
                outward=outward, item=line['item'], quantity=line.get('quantity', 1), remarks=line.get('remarks')
            )
            line['item'].set_state(ItemProcessState.OUTWARD, party=outward.party)
        return outward


# ==================== JOB WORK ====================

class JobWorkItemSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.main_part_name', read_only=True)
    current_name = serializers.CharField(source='item.current_name', read_only=True)
    drawing_no = serializers.CharField(source='item.drawing_no', read_only=True)
    current_process = serializers.CharField(source='item.current_process', read_only=True)

    class Meta:
        model = JobWorkItem
        fields = ['id', 'item', 'item_name', 'current_name', 'drawing_no', 'current_process', 'rate',
                  'gst_percent', 'remarks']


class JobWorkItemInputSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, allow_null=True)
    gst_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'),
        required=False, allow_null=True
    )
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class JobWorkSerializer(serializers.ModelSerializer):
    items = JobWorkItemSerializer(many=True, read_only=True)
    line_items = JobWorkItemInputSerializer(many=True, write_only=True)
    to_party_id = serializers.PrimaryKeyRelatedField(source='to_party', queryset=Party.objects.all(), write_only=True)
    to_party_name = serializers.CharField(source='to_party.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = JobWork
        fields = [
            'id', 'job_work_no', 'location', 'location_name', 'to_party', 'to_party_id', 'to_party_name',
            'description', 'remarks', 'status', 'attachment_urls', 'created_by', 'created_by_username',
            'is_active', 'items', 'line_items', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'job_work_no', 'location', 'to_party', 'status', 'created_by', 'is_active', 'created_at', 'updated_at',
        ]

    def to_internal_value(self, data):
        if hasattr(data, 'copy') and 'items' in data and 'line_items' not in data:
            data = data.copy()
            data['line_items'] = data.pop('items')
        return super().to_internal_value(data)

    def validate_to_party_id(self, value):
        return _active_party(value)

    def validate_attachment_urls(self, value):
        return _url_list(value)

    def validate_line_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        items = _in_stock_items([line['item_id'] for line in value], self.context.get('location'))
        return [dict(line, item=items[line['item_id']]) for line in value]

    @transaction.atomic
    def create(self, validated_data):
        lines = validated_data.pop('line_items')
        location = self.context['location']
        job_work = JobWork.objects.create(
            job_work_no=generate_code('JW', JobWork, 'job_work_no', location),
            location=location,
            created_by=self.context.get('user'),
            **validated_data,
        )
        for line in lines:
            JobWorkItem.objects.create(
                job_work=job_work, item=line['item'], rate=line.get('rate'),
                gst_percent=line.get('gst_percent'), remarks=line.get('remarks'),
            )
            line['item'].set_state(ItemProcessState.IN_JOBWORK, party=job_work.to_party)
        return job_work


class JobWorkStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=JobWork.STATUS_CHOICES)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)
