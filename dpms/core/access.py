"""
Feature-flag checks and current company/location resolution.

Clients pick the working location with the X-Company-Id / X-Location-Id
headers. When they are absent the user's default location is used, then the
first location the user has been granted.
"""
import logging

from rest_framework import status
from rest_framework.response import Response

from .models import UserLocationAccess, UserPermission

logger = logging.getLogger('dpms.core')

FORBIDDEN_MESSAGE = 'Access denied: Missing required permission.'


def is_admin(user):
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or getattr(user, 'role', None) == 'QC_ADMIN'


def get_user_permission(user):
    try:
        return user.permission
    except UserPermission.DoesNotExist:
        return None


def has_permission(user, flag):
    """True when the user holds the given feature flag"""
    if is_admin(user):
        return True
    if not user or not user.is_authenticated:
        return False
    permission = get_user_permission(user)
    if permission is None:
        return False
    return bool(getattr(permission, flag, False))


def effective_permissions(user):
    """All flags as booleans, admins get everything"""
    permission = get_user_permission(user)
    if is_admin(user):
        data = {flag: True for flag in UserPermission.FLAG_FIELDS}
        data['navigation_layout'] = permission.navigation_layout if permission else 'VERTICAL'
        return data
    if permission is None:
        data = {flag: False for flag in UserPermission.FLAG_FIELDS}
        data['navigation_layout'] = 'VERTICAL'
        return data
    return permission.as_dict()


def forbidden(request=None, flag=None):
    if request is not None:
        logger.warning(f"User {request.user.username} denied: missing permission {flag}")
    return Response({'error': FORBIDDEN_MESSAGE}, status=status.HTTP_403_FORBIDDEN)


def _parse_header_id(request, header):
    raw = request.headers.get(header)
    if raw in (None, '', 'null', 'undefined'):
        return None
    return int(raw)


def allowed_locations(user):
    """Active locations the user may select"""
    from dpms.locations.models import Location

    queryset = Location.objects.filter(is_active=True, company__is_active=True).select_related('company')
    if is_admin(user):
        return queryset
    return queryset.filter(user_access__user=user).distinct()


def get_current_location(request):
    """
    Resolve the request's working location.

    Returns (location, None) on success or (None, Response) describing the
    failure so views can return it directly.
    """
    from dpms.locations.models import Location

    user = request.user
    try:
        location_id = _parse_header_id(request, 'X-Location-Id')
        company_id = _parse_header_id(request, 'X-Company-Id')
    except ValueError:
        return None, Response({'error': 'Invalid company or location header'}, status=status.HTTP_400_BAD_REQUEST)

    location = None
    if location_id is not None:
        location = Location.objects.select_related('company').filter(pk=location_id, is_active=True).first()
        if location is None:
            return None, Response({'error': 'Selected location does not exist'}, status=status.HTTP_400_BAD_REQUEST)
        if company_id is not None and location.company_id != company_id:
            return None, Response({'error': 'Location does not belong to the selected company'}, status=status.HTTP_400_BAD_REQUEST)
    else:
        if user.default_location_id:
            location = Location.objects.select_related('company').filter(
                pk=user.default_location_id, is_active=True
            ).first()
        if location is None:
            access = UserLocationAccess.objects.select_related('location__company').filter(
                user=user, location__is_active=True
            )
            if company_id is not None:
                access = access.filter(company_id=company_id)
            first = access.order_by('id').first()
            location = first.location if first else None

    if location is None:
        return None, Response({'error': 'No location selected'}, status=status.HTTP_400_BAD_REQUEST)

    if not is_admin(user) and not UserLocationAccess.objects.filter(user=user, location=location).exists():
        logger.warning(f"User {user.username} attempted to use location {location.id} without access")
        return None, Response({'error': 'You do not have access to this location'}, status=status.HTTP_403_FORBIDDEN)

    return location, None
