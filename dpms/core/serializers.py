from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, UserPermission, UserLocationAccess, Setting, AppSettings, AuditLog


class UserSerializer(serializers.ModelSerializer):
    default_company_name = serializers.CharField(source='default_company.name', read_only=True, default=None)
    default_location_name = serializers.CharField(source='default_location.name', read_only=True, default=None)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'role', 'mobile_number', 'avatar',
                  'default_company', 'default_company_name', 'default_location', 'default_location_name',
                  'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        company = attrs.get('default_company', getattr(self.instance, 'default_company', None))
        location = attrs.get('default_location', getattr(self.instance, 'default_location', None))
        if location and company and location.company_id != company.id:
            raise serializers.ValidationError({'default_location': 'Location does not belong to the default company'})
        return attrs


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'password', 'first_name', 'last_name', 'role', 'mobile_number',
                  'default_company', 'default_location']

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class UserPermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserPermission
        fields = UserPermission.FLAG_FIELDS + ['navigation_layout']


class UserLocationAccessSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='company.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)

    class Meta:
        model = UserLocationAccess
        fields = ['id', 'company', 'company_name', 'location', 'location_name']


class LocationAccessEntrySerializer(serializers.Serializer):
    """One `{company_id, location_id}` entry of a user's access list"""
    company_id = serializers.IntegerField(required=False, allow_null=True)
    location_id = serializers.IntegerField()

    def validate(self, attrs):
        from dpms.locations.models import Location

        location = Location.objects.filter(pk=attrs['location_id']).first()
        if location is None:
            raise serializers.ValidationError({'location_id': f"Location {attrs['location_id']} does not exist"})
        company_id = attrs.get('company_id')
        if company_id is not None and company_id != location.company_id:
            raise serializers.ValidationError(
                {'company_id': f"Location {location.name} does not belong to company {company_id}"}
            )
        attrs['location'] = location
        return attrs


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AppSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppSettings
        fields = ['id', 'software_name', 'primary_color', 'support_email', 'support_phone', 'address',
                  'website', 'updated_at']
        read_only_fields = ['updated_at']

    def validate_primary_color(self, value):
        if value and not (value.startswith('#') and len(value) in (4, 7)):
            raise serializers.ValidationError('Enter a hex colour such as #3b82f6')
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'location', 'changes', 'ip_address', 'created_at']
