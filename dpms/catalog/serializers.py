from rest_framework import serializers
from .models import ItemType, Material, OwnerType, ItemStatus, Item, ItemChangeLog


class MasterSerializer(serializers.ModelSerializer):
    """Shared behaviour for the name-only master tables"""

    class Meta:
        fields = ['id', 'name', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        model = self.Meta.model
        queryset = model.objects.filter(name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError(f"'{value}' already exists")
        return value


class ItemTypeSerializer(MasterSerializer):
    class Meta(MasterSerializer.Meta):
        model = ItemType


class MaterialSerializer(MasterSerializer):
    class Meta(MasterSerializer.Meta):
        model = Material


class OwnerTypeSerializer(MasterSerializer):
    class Meta(MasterSerializer.Meta):
        model = OwnerType


class ItemStatusSerializer(MasterSerializer):
    class Meta(MasterSerializer.Meta):
        model = ItemStatus


# kind (URL segment) -> (serializer, permission flag)
MASTER_SERIALIZERS = {
    'item-types': (ItemTypeSerializer, 'manage_item_type'),
    'materials': (MaterialSerializer, 'manage_material'),
    'owner-types': (OwnerTypeSerializer, 'manage_owner_type'),
    'item-statuses': (ItemStatusSerializer, 'manage_item_status'),
}


class ItemSerializer(serializers.ModelSerializer):
    item_type_name = serializers.CharField(source='item_type.name', read_only=True)
    material_name = serializers.CharField(source='material.name', read_only=True)
    owner_type_name = serializers.CharField(source='owner_type.name', read_only=True)
    status_name = serializers.CharField(source='status.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    current_process_display = serializers.CharField(source='get_current_process_display', read_only=True)
    current_location_name = serializers.CharField(source='current_location.name', read_only=True, default=None)
    current_party_name = serializers.CharField(source='current_party.name', read_only=True, default=None)
    current_name = serializers.CharField(max_length=200, required=False, allow_blank=True)

    class Meta:
        model = Item
        fields = [
            'id', 'main_part_name', 'current_name', 'item_type', 'item_type_name', 'drawing_no',
            'revision_no', 'material', 'material_name', 'owner_type', 'owner_type_name', 'status',
            'status_name', 'location', 'location_name', 'current_process', 'current_process_display',
            'current_location', 'current_location_name', 'current_party', 'current_party_name',
            'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'location', 'current_process', 'current_location', 'current_party', 'is_active',
            'created_at', 'updated_at',
        ]

    def validate_main_part_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Main part name is required')
        if self.instance and self.instance.main_part_name != value:
            raise serializers.ValidationError('Main part name cannot be changed')
        queryset = Item.objects.filter(main_part_name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError(f"Item '{value}' already exists")
        return value

    def validate_drawing_no(self, value):
        value = (value or '').strip()
        if not value:
            return None
        queryset = Item.objects.filter(drawing_no__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError(f"Drawing no '{value}' is already used by another item")
        return value

    def validate_revision_no(self, value):
        return (value or '').strip() or None

    def validate(self, attrs):
        for field in ('item_type', 'material', 'owner_type', 'status'):
            master = attrs.get(field)
            if master is not None and not master.is_active and (
                self.instance is None or getattr(self.instance, f'{field}_id') != master.id
            ):
                raise serializers.ValidationError({field: f"'{master.name}' is inactive"})
        if self.instance is None:
            attrs['current_name'] = (attrs.get('current_name') or '').strip() or attrs.get('main_part_name')
        else:
            # Renames go through the change-process flow
            attrs.pop('current_name', None)
            attrs.pop('main_part_name', None)
        return attrs


class ItemChangeLogSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.main_part_name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = ItemChangeLog
        fields = [
            'id', 'item', 'item_name', 'old_name', 'new_name', 'old_revision', 'new_revision',
            'change_type', 'remarks', 'is_reverted', 'created_by', 'created_by_username', 'created_at',
        ]
        read_only_fields = fields


class ChangeProcessSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    new_name = serializers.CharField(max_length=200)
    new_revision = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    change_type = serializers.ChoiceField(choices=ItemChangeLog.CHANGE_TYPE_CHOICES)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_new_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('New name is required')
        return value
