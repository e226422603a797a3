from rest_framework import serializers
from dpms.core.validators import gst_validator, is_valid_gst
from .models import Company, Location


class CompanySerializer(serializers.ModelSerializer):
    gst_no = serializers.CharField(max_length=15, required=False, allow_blank=True, allow_null=True)
    location_count = serializers.SerializerMethodField()

    class Meta:
        model = Company
        fields = ['id', 'name', 'address', 'gst_no', 'gst_date', 'state', 'city', 'pincode',
                  'contact_person', 'contact_number', 'logo', 'use_as_party', 'is_active',
                  'location_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_location_count(self, obj):
        return obj.locations.filter(is_active=True).count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Company name is required')
        queryset = Company.objects.filter(name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError(f"Company '{value}' already exists")
        return value

    def validate_gst_no(self, value):
        if not value:
            return None
        value = value.strip().upper()
        if not is_valid_gst(value):
            raise serializers.ValidationError(gst_validator.message)
        return value


class LocationSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='company.name', read_only=True)

    class Meta:
        model = Location
        fields = ['id', 'name', 'company', 'company_name', 'address', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        name = attrs.get('name', getattr(self.instance, 'name', None))
        company = attrs.get('company', getattr(self.instance, 'company', None))
        if name and company:
            queryset = Location.objects.filter(company=company, name__iexact=name.strip())
            if self.instance:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError({'name': f"Location '{name}' already exists for {company.name}"})
        if company and not company.is_active:
            raise serializers.ValidationError({'company': 'Company is inactive'})
        return attrs
