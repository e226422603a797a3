"""Utility functions for audit logging, pagination and uploaded files"""
import logging
import os
import re
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from django.core.paginator import Paginator

from .models import AuditLog

logger = logging.getLogger('dpms.core')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None,
                     location=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, approve, reject, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., item name)
        object_reference: Reference identifier (e.g., PI number, QC number)
        location: Location the operation belongs to
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            location=location,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def paginated_payload(request, queryset, serializer_class, default_limit=15, context=None):
    """Paginate a queryset the same way every list endpoint does"""
    try:
        page = int(request.query_params.get('page', 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.query_params.get('limit', default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    limit = max(1, min(limit, 500))

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }


# Uploaded files

_UNSAFE_SEGMENT = re.compile(r'[^A-Za-z0-9._-]+')


def sanitize_path_segment(value):
    """Make a value safe to use as a single folder or file name segment"""
    cleaned = _UNSAFE_SEGMENT.sub('_', str(value or '').strip())
    cleaned = re.sub(r'_+', '_', cleaned).strip('._')
    return cleaned or 'unnamed'


class UploadError(Exception):
    pass


def save_uploaded_file(upload, folder, subfolder=None):
    """Validate and store an uploaded file, returning its public URL"""
    extension = os.path.splitext(upload.name)[1].lower()
    if extension not in settings.UPLOAD_ALLOWED_EXTENSIONS:
        raise UploadError(f"File type '{extension or 'unknown'}' is not allowed")
    if upload.size > settings.UPLOAD_MAX_BYTES:
        raise UploadError('File exceeds the maximum allowed size')

    base_name = sanitize_path_segment(os.path.splitext(upload.name)[0])
    parts = [folder]
    if subfolder:
        parts.append(sanitize_path_segment(subfolder))
    parts.append(f"{uuid.uuid4().hex[:8]}_{base_name}{extension}")

    stored_path = default_storage.save('/'.join(parts), upload)
    logger.info(f"Stored upload {upload.name} as {stored_path}")
    return f"{settings.MEDIA_URL}{stored_path}"


def delete_uploaded_file(url, folder):
    """Delete a stored file given its URL. Only files under `folder` may be removed."""
    if not url or not url.startswith(settings.MEDIA_URL):
        raise UploadError('Invalid file URL')
    relative = url[len(settings.MEDIA_URL):]
    normalized = os.path.normpath(relative).replace('\\', '/')
    if normalized.startswith('..') or not normalized.startswith(f"{folder}/"):
        raise UploadError('File is outside the allowed folder')
    if default_storage.exists(normalized):
        default_storage.delete(normalized)
        logger.info(f"Deleted upload {normalized}")
        return True
    return False
