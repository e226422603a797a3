import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404

from .access import (
    has_permission, is_admin, effective_permissions, forbidden,
    allowed_locations, get_current_location,
)
from .maintenance import reset_system as run_system_reset
from .model_cache import get_cached_app_settings, cache_app_settings
from .models import Setting, AuditLog, AppSettings, UserPermission, UserLocationAccess
from .serializers import (
    UserSerializer, UserCreateSerializer, UserPermissionSerializer, UserLocationAccessSerializer,
    LocationAccessEntrySerializer, SettingSerializer, AppSettingsSerializer, AuditLogSerializer
)
from .utils import create_audit_log, paginated_payload

logger = logging.getLogger('dpms.core')

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    """Tokens are stateless; the client discards them"""
    if request.user and request.user.is_authenticated:
        logger.info(f"User {request.user.username} logged out")
    return Response({'message': 'Logged out'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def validate_token(request):
    return Response({'valid': True, 'user': UserSerializer(request.user).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with permissions, selectable locations and the active location"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['is_admin'] = is_admin(user)
    user_data['permissions'] = effective_permissions(user)

    locations = allowed_locations(user)
    user_data['allowed_locations'] = [
        {
            'company_id': loc.company_id,
            'company_name': loc.company.name,
            'location_id': loc.id,
            'location_name': loc.name,
        }
        for loc in locations
    ]

    location, _ = get_current_location(request)
    user_data['current_company'] = (
        {'id': location.company_id, 'name': location.company.name} if location else None
    )
    user_data['current_location'] = {'id': location.id, 'name': location.name} if location else None
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def user_list_create(request):
    """List all users or create a new user"""
    if not has_permission(request.user, 'manage_users'):
        return forbidden(request, 'manage_users')

    if request.method == 'GET':
        users = User.objects.select_related('default_company', 'default_location').order_by('username')
        search = request.query_params.get('search')
        if search:
            users = users.filter(
                Q(username__icontains=search) |
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(email__icontains=search)
            )
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            users = users.filter(is_active=is_active.lower() == 'true')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)

    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        logger.info(f"User {request.user.username} created user {user.username}")
        create_audit_log(
            request=request, action='create', model_name='User', object_id=user.id,
            object_name=user.username, changes={'role': user.role}
        )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    logger.warning(f"User creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk):
    """Retrieve, update or deactivate a user"""
    if not has_permission(request.user, 'manage_users'):
        return forbidden(request, 'manage_users')

    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            password = request.data.get('password')
            if password:
                user.set_password(password)
                user.save(update_fields=['password'])
            create_audit_log(
                request=request, action='update', model_name='User', object_id=user.id,
                object_name=user.username, changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(UserSerializer(user).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot deactivate your own account'}, status=status.HTTP_400_BAD_REQUEST)
    user.is_active = False
    user.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"User {request.user.username} deactivated user {user.username}")
    create_audit_log(
        request=request, action='delete', model_name='User', object_id=user.id, object_name=user.username
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def user_permissions(request, pk):
    """Read or replace a user's feature flags and location access"""
    if not has_permission(request.user, 'manage_users'):
        return forbidden(request, 'manage_users')

    user = get_object_or_404(User, pk=pk)
    permission, _ = UserPermission.objects.get_or_create(user=user)

    if request.method == 'GET':
        access = UserLocationAccess.objects.filter(user=user).select_related('company', 'location')
        data = UserPermissionSerializer(permission).data
        data['location_access'] = UserLocationAccessSerializer(access, many=True).data
        return Response(data)

    serializer = UserPermissionSerializer(permission, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    access_data = request.data.get('location_access')
    pairs = []
    if access_data is not None:
        access_serializer = LocationAccessEntrySerializer(data=access_data, many=True)
        if not access_serializer.is_valid():
            logger.warning(f"Invalid location access for user {user.username}: {access_serializer.errors}")
            return Response({'location_access': access_serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        pairs = [entry['location'] for entry in access_serializer.validated_data]

    with transaction.atomic():
        serializer.save()
        if access_data is not None:
            UserLocationAccess.objects.filter(user=user).delete()
            for location in pairs:
                UserLocationAccess.objects.get_or_create(user=user, company_id=location.company_id, location=location)

    logger.info(f"User {request.user.username} updated permissions for {user.username}")
    create_audit_log(
        request=request, action='permission_change', model_name='UserPermission', object_id=user.id,
        object_name=user.username,
        changes={'flags': serializer.validated_data, 'location_ids': [loc.id for loc in pairs]}
    )
    access = UserLocationAccess.objects.filter(user=user).select_related('company', 'location')
    data = UserPermissionSerializer(permission).data
    data['location_access'] = UserLocationAccessSerializer(access, many=True).data
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_permissions(request):
    return Response(effective_permissions(request.user))


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def software_settings(request):
    """Branding/support settings; anyone may read, settings access to change"""
    if request.method == 'GET':
        cached = get_cached_app_settings()
        if cached is not None:
            return Response(cached)
        data = AppSettingsSerializer(AppSettings.load()).data
        cache_app_settings(data)
        return Response(data)

    if not has_permission(request.user, 'access_settings'):
        return forbidden(request, 'access_settings')

    settings_obj = AppSettings.load()
    serializer = AppSettingsSerializer(settings_obj, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(
            request=request, action='update', model_name='AppSettings', object_id=settings_obj.id,
            object_name=settings_obj.software_name, changes={k: str(v) for k, v in serializer.validated_data.items()}
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if not is_admin(request.user):
        return forbidden(request, 'admin')
    if request.method == 'GET':
        settings_qs = Setting.objects.all().order_by('key')
        return Response(SettingSerializer(settings_qs, many=True).data)
    serializer = SettingSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    if not is_admin(request.user):
        return forbidden(request, 'admin')
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering and pagination"""
    if not (is_admin(request.user) or has_permission(request.user, 'view_reports')):
        return forbidden(request, 'view_reports')

    queryset = AuditLog.objects.select_related('user').all()

    action = request.query_params.get('action')
    model_name = request.query_params.get('model_name')
    user_id = request.query_params.get('user')
    object_reference = request.query_params.get('object_reference')
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')

    if action:
        queryset = queryset.filter(action=action)
    if model_name:
        queryset = queryset.filter(model_name=model_name)
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    if object_reference:
        queryset = queryset.filter(object_reference__icontains=object_reference)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    return Response(paginated_payload(request, queryset.order_by('-created_at'), AuditLogSerializer, default_limit=50))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    if not (is_admin(request.user) or has_permission(request.user, 'view_reports')):
        return forbidden(request, 'view_reports')
    log = get_object_or_404(AuditLog.objects.select_related('user'), pk=pk)
    return Response(AuditLogSerializer(log).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reset_system(request):
    """Wipe every transactional and master record. Admin role only."""
    if not is_admin(request.user):
        return forbidden(request, 'admin')
    try:
        counts = run_system_reset()
    except Exception as e:
        logger.error(f"System reset failed: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    # The caller is removed by the reset unless it is the kept admin account.
    actor_exists = User.objects.filter(pk=request.user.pk).exists()
    create_audit_log(
        request=request if actor_exists else None, action='system_reset', model_name='System',
        object_id='reset', changes=counts
    )
    return Response({'message': 'System reset completed', 'deleted': counts})
