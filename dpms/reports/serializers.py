from rest_framework import serializers
from dpms.catalog.models import Item


class InventoryStatusSerializer(serializers.ModelSerializer):
    item_type = serializers.CharField(source='item_type.name', read_only=True)
    material = serializers.CharField(source='material.name', read_only=True)
    owner_type = serializers.CharField(source='owner_type.name', read_only=True)
    status = serializers.CharField(source='status.name', read_only=True)
    current_process_display = serializers.CharField(source='get_current_process_display', read_only=True)
    holder_name = serializers.CharField(read_only=True)

    class Meta:
        model = Item
        fields = ['id', 'main_part_name', 'current_name', 'drawing_no', 'revision_no', 'item_type', 'material',
                  'owner_type', 'status', 'current_process', 'current_process_display', 'holder_name']
