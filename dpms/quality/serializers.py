from django.db import transaction
from rest_framework import serializers

from dpms.core.numbering import generate_code
from dpms.inventory.models import InwardLine
from dpms.parties.models import Party
from .models import QcEntry, QcItem


def pending_inward_lines(location, exclude_entry=None):
    """Inward lines at `location` waiting for QC and not held by a pending entry"""
    held = QcItem.objects.filter(qc_entry__status='PENDING', qc_entry__is_active=True)
    if exclude_entry is not None:
        held = held.exclude(qc_entry=exclude_entry)
    return InwardLine.objects.select_related(
        'inward__vendor', 'item'
    ).filter(
        inward__location=location,
        inward__status='SUBMITTED',
        inward__is_active=True,
        is_qc_pending=True,
    ).exclude(id__in=held.values('inward_line_id'))


class PendingInwardLineSerializer(serializers.ModelSerializer):
    inward_no = serializers.CharField(source='inward.inward_no', read_only=True)
    inward_date = serializers.DateField(source='inward.inward_date', read_only=True)
    party_id = serializers.IntegerField(source='inward.vendor_id', read_only=True, default=None)
    party_name = serializers.CharField(source='inward.vendor.name', read_only=True, default=None)
    item_name = serializers.CharField(source='item.main_part_name', read_only=True)
    current_name = serializers.CharField(source='item.current_name', read_only=True)

    class Meta:
        model = InwardLine
        fields = [
            'id', 'inward', 'inward_no', 'inward_date', 'party_id', 'party_name', 'item', 'item_name',
            'current_name', 'item_type_name', 'material_name', 'drawing_no', 'revision_no', 'quantity',
            'source_type', 'source_ref_id', 'remarks',
        ]


class QcItemSerializer(serializers.ModelSerializer):
    inward_no = serializers.CharField(source='inward_line.inward.inward_no', read_only=True)
    item_id = serializers.IntegerField(source='inward_line.item_id', read_only=True)
    item_name = serializers.CharField(source='inward_line.item.main_part_name', read_only=True)
    current_name = serializers.CharField(source='inward_line.item.current_name', read_only=True)
    drawing_no = serializers.CharField(source='inward_line.drawing_no', read_only=True)
    revision_no = serializers.CharField(source='inward_line.revision_no', read_only=True)
    item_type_name = serializers.CharField(source='inward_line.item_type_name', read_only=True)
    material_name = serializers.CharField(source='inward_line.material_name', read_only=True)
    source_type = serializers.CharField(source='inward_line.source_type', read_only=True)

    class Meta:
        model = QcItem
        fields = [
            'id', 'inward_line', 'inward_no', 'item_id', 'item_name', 'current_name', 'drawing_no',
            'revision_no', 'item_type_name', 'material_name', 'source_type', 'is_approved', 'remarks',
            'decided_at',
        ]


class QcEntrySerializer(serializers.ModelSerializer):
    items = QcItemSerializer(many=True, read_only=True)
    inward_line_ids = serializers.ListField(child=serializers.IntegerField(), write_only=True, required=False)
    party_id = serializers.PrimaryKeyRelatedField(
        source='party', queryset=Party.objects.all(), write_only=True, required=False, allow_null=True
    )
    party_name = serializers.CharField(source='party.name', read_only=True, default=None)
    location_name = serializers.CharField(source='location.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True, default=None)
    summary = serializers.SerializerMethodField()

    class Meta:
        model = QcEntry
        fields = [
            'id', 'qc_no', 'location', 'location_name', 'party', 'party_id', 'party_name', 'source_type',
            'remarks', 'status', 'attachment_urls', 'created_by', 'created_by_username', 'approved_by',
            'approved_by_username', 'approved_at', 'is_active', 'items', 'inward_line_ids', 'summary',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'qc_no', 'location', 'party', 'status', 'created_by', 'approved_by', 'approved_at', 'is_active',
            'created_at', 'updated_at',
        ]

    def get_summary(self, obj):
        decisions = [item.is_approved for item in obj.items.all()]
        return {
            'total': len(decisions),
            'approved': sum(1 for d in decisions if d is True),
            'rejected': sum(1 for d in decisions if d is False),
            'pending': sum(1 for d in decisions if d is None),
        }

    def validate_attachment_urls(self, value):
        if value in (None, ''):
            return []
        if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
            raise serializers.ValidationError('Expected a list of URLs')
        return value

    def validate(self, attrs):
        line_ids = attrs.get('inward_line_ids')
        if self.instance is None and line_ids is None:
            raise serializers.ValidationError({'inward_line_ids': 'At least one inward line is required'})
        if line_ids is None:
            return attrs

        line_ids = list(dict.fromkeys(line_ids))
        if not line_ids:
            raise serializers.ValidationError({'inward_line_ids': 'At least one inward line is required'})

        party = attrs.get('party', getattr(self.instance, 'party', None))
        source_type = attrs.get('source_type', getattr(self.instance, 'source_type', None))
        available = {
            line.id: line for line in pending_inward_lines(self.context['location'], exclude_entry=self.instance)
            .filter(id__in=line_ids)
        }
        lines = []
        for line_id in line_ids:
            line = available.get(line_id)
            if line is None:
                raise serializers.ValidationError(
                    {'inward_line_ids': f'Inward line {line_id} is not waiting for QC or is already on a pending QC entry'}
                )
            if party is not None and line.inward.vendor_id != party.id:
                raise serializers.ValidationError(
                    {'inward_line_ids': f"Item '{line.item.current_name}' was not received from {party.name}"}
                )
            if source_type and line.source_type != source_type:
                raise serializers.ValidationError(
                    {'inward_line_ids': f"Item '{line.item.current_name}' is a {line.get_source_type_display()} line"}
                )
            lines.append(line)
        attrs['inward_line_ids'] = lines
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        lines = validated_data.pop('inward_line_ids')
        location = self.context['location']
        entry = QcEntry.objects.create(
            qc_no=generate_code('QC', QcEntry, 'qc_no', location),
            location=location,
            created_by=self.context.get('user'),
            **validated_data,
        )
        QcItem.objects.bulk_create([QcItem(qc_entry=entry, inward_line=line) for line in lines])
        return entry

    @transaction.atomic
    def update(self, instance, validated_data):
        lines = validated_data.pop('inward_line_ids', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if lines is not None:
            instance.items.all().delete()
            QcItem.objects.bulk_create([QcItem(qc_entry=instance, inward_line=line) for line in lines])
        return instance


class QcItemDecisionSerializer(serializers.Serializer):
    qc_item_id = serializers.IntegerField()
    is_approved = serializers.BooleanField()
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)
