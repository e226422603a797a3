from rest_framework import serializers
from dpms.core.validators import is_valid_gst
from .models import Party


class PartySerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='company.name', read_only=True, default=None)

    class Meta:
        model = Party
        fields = ['id', 'name', 'party_code', 'contact_person', 'phone', 'email', 'address', 'gst_no',
                  'company', 'company_name', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Party name is required')
        return value

    def validate_party_code(self, value):
        return value.strip().upper() if value else None

    def validate_gst_no(self, value):
        if not value:
            return None
        value = value.strip().upper()
        if not is_valid_gst(value):
            raise serializers.ValidationError('Invalid GST format')
        return value
