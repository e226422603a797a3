import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from dpms.catalog.models import ItemProcessState
from dpms.core.access import has_permission, forbidden, get_current_location
from dpms.core.numbering import generate_code
from dpms.core.utils import (
    create_audit_log, paginated_payload, save_uploaded_file, delete_uploaded_file, UploadError,
)
from .models import QcEntry, QcItem
from .serializers import (
    QcEntrySerializer, QcItemDecisionSerializer, PendingInwardLineSerializer, pending_inward_lines,
)

logger = logging.getLogger('dpms.quality')

QC_ATTACHMENT_FOLDER = 'qc_attachments'


def _entry_queryset(location):
    return QcEntry.objects.select_related(
        'location', 'party', 'created_by', 'approved_by'
    ).prefetch_related('items__inward_line__inward', 'items__inward_line__item').filter(
        location=location, is_active=True
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def qc_pending(request):
    """Inward lines waiting for QC at the current location"""
    if not has_permission(request.user, 'view_qc'):
        return forbidden(request, 'view_qc')
    location, error = get_current_location(request)
    if error:
        return error
    lines = pending_inward_lines(location)
    party_id = request.query_params.get('party_id')
    source_type = request.query_params.get('source_type')
    if party_id:
        lines = lines.filter(inward__vendor_id=party_id)
    if source_type:
        lines = lines.filter(source_type=source_type.upper())
    lines = lines.order_by('inward__inward_date', 'inward_id', 'id')
    return Response(PendingInwardLineSerializer(lines, many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def qc_list_create(request):
    location, error = get_current_location(request)
    if error:
        return error

    if request.method == 'GET':
        if not has_permission(request.user, 'view_qc'):
            return forbidden(request, 'view_qc')
        queryset = _entry_queryset(location)
        status_filter = request.query_params.get('status')
        search = request.query_params.get('search')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        if search:
            queryset = queryset.filter(Q(qc_no__icontains=search) | Q(party__name__icontains=search))
        return Response(paginated_payload(request, queryset, QcEntrySerializer))

    if not has_permission(request.user, 'create_qc'):
        return forbidden(request, 'create_qc')

    try:
        serializer = QcEntrySerializer(
            data=request.data, context={'request': request, 'location': location, 'user': request.user}
        )
        if serializer.is_valid():
            entry = serializer.save()
            logger.info(f"QC entry {entry.qc_no} created by {request.user.username} at {location}")
            create_audit_log(
                request=request, action='create', model_name='QcEntry', object_id=entry.id,
                object_name=entry.qc_no, object_reference=entry.qc_no,
                changes={'lines': entry.items.count()}, location=location
            )
            return Response(QcEntrySerializer(entry).data, status=status.HTTP_201_CREATED)
        logger.warning(f"QC entry validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.warning(f"Duplicate QC entry number at {location}: {str(e)}")
        return Response(
            {'error': 'The document number was taken by another request, please try again'},
            status=status.HTTP_400_BAD_REQUEST
        )
    except Exception as e:
        logger.error(f"Unexpected error in qc_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def qc_detail(request, pk):
    location, error = get_current_location(request)
    if error:
        return error
    entry = get_object_or_404(_entry_queryset(location), pk=pk)

    if request.method == 'GET':
        if not has_permission(request.user, 'view_qc'):
            return forbidden(request, 'view_qc')
        return Response(QcEntrySerializer(entry).data)

    if not has_permission(request.user, 'edit_qc'):
        return forbidden(request, 'edit_qc')
    if entry.status != 'PENDING':
        return Response({'error': f'{entry.qc_no} is already {entry.get_status_display().lower()}'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method in ('PUT', 'PATCH'):
        if entry.has_decisions:
            return Response({'error': 'Items of this QC entry have already been decided'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = QcEntrySerializer(
            entry, data=request.data, partial=request.method == 'PATCH',
            context={'request': request, 'location': location, 'user': request.user}
        )
        if serializer.is_valid():
            serializer.save()
            entry = _entry_queryset(location).get(pk=entry.pk)
            create_audit_log(
                request=request, action='update', model_name='QcEntry', object_id=entry.id,
                object_name=entry.qc_no, object_reference=entry.qc_no, location=location
            )
            return Response(QcEntrySerializer(entry).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    entry.is_active = False
    entry.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"QC entry {entry.qc_no} deleted by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name='QcEntry', object_id=entry.id,
        object_name=entry.qc_no, object_reference=entry.qc_no, location=location
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def qc_approve_item(request, pk):
    """Record the decision for one item of a pending entry"""
    if not has_permission(request.user, 'approve_qc'):
        return forbidden(request, 'approve_qc')
    location, error = get_current_location(request)
    if error:
        return error
    entry = get_object_or_404(QcEntry, pk=pk, location=location, is_active=True)
    if entry.status != 'PENDING':
        return Response({'error': f'{entry.qc_no} is already {entry.get_status_display().lower()}'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = QcItemDecisionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    qc_item = get_object_or_404(QcItem.objects.select_related('inward_line__item'), pk=data['qc_item_id'], qc_entry=entry)
    qc_item.is_approved = data['is_approved']
    qc_item.remarks = data.get('remarks')
    qc_item.decided_at = timezone.now()
    qc_item.save(update_fields=['is_approved', 'remarks', 'decided_at'])

    decision = 'approved' if qc_item.is_approved else 'rejected'
    logger.info(f"QC {entry.qc_no}: item {qc_item.inward_line.item_id} {decision} by {request.user.username}")
    create_audit_log(
        request=request, action='approve' if qc_item.is_approved else 'reject', model_name='QcItem',
        object_id=qc_item.id, object_name=qc_item.inward_line.item.current_name, object_reference=entry.qc_no,
        changes={'is_approved': qc_item.is_approved, 'remarks': qc_item.remarks}, location=location
    )
    return Response(QcEntrySerializer(_entry_queryset(location).get(pk=entry.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def qc_approve(request, pk):
    """
    Close a QC entry once every item is decided.

    Approved items go into stock at the entry's location; rejected items
    drop back to NOT_IN_STOCK.
    """
    if not has_permission(request.user, 'approve_qc'):
        return forbidden(request, 'approve_qc')
    location, error = get_current_location(request)
    if error:
        return error

    with transaction.atomic():
        entry = get_object_or_404(QcEntry.objects.select_for_update(), pk=pk, location=location, is_active=True)
        if entry.status != 'PENDING':
            return Response({'error': f'{entry.qc_no} is already {entry.get_status_display().lower()}'}, status=status.HTTP_400_BAD_REQUEST)
        qc_items = list(entry.items.select_related('inward_line__item'))
        if not qc_items:
            return Response({'error': 'QC entry has no items'}, status=status.HTTP_400_BAD_REQUEST)
        undecided = [qi for qi in qc_items if qi.is_approved is None]
        if undecided:
            return Response(
                {'error': f'{len(undecided)} item(s) have not been approved or rejected yet'},
                status=status.HTTP_400_BAD_REQUEST
            )

        for qc_item in qc_items:
            line = qc_item.inward_line
            line.is_qc_pending = False
            line.is_qc_approved = qc_item.is_approved
            line.save(update_fields=['is_qc_pending', 'is_qc_approved'])
            if qc_item.is_approved:
                line.item.set_state(ItemProcessState.IN_STOCK, location=entry.location)
            else:
                line.item.set_state(ItemProcessState.NOT_IN_STOCK)

        entry.status = 'APPROVED'
        entry.approved_by = request.user
        entry.approved_at = timezone.now()
        entry.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])

    approved = sum(1 for qi in qc_items if qi.is_approved)
    logger.info(f"QC entry {entry.qc_no} approved by {request.user.username}: {approved}/{len(qc_items)} passed")
    create_audit_log(
        request=request, action='approve', model_name='QcEntry', object_id=entry.id,
        object_name=entry.qc_no, object_reference=entry.qc_no,
        changes={'approved': approved, 'rejected': len(qc_items) - approved}, location=location
    )
    return Response(QcEntrySerializer(_entry_queryset(location).get(pk=entry.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def qc_reject(request, pk):
    """Reject a whole entry; its inward lines go back to the pending pool"""
    if not has_permission(request.user, 'approve_qc'):
        return forbidden(request, 'approve_qc')
    location, error = get_current_location(request)
    if error:
        return error

    with transaction.atomic():
        entry = get_object_or_404(QcEntry.objects.select_for_update(), pk=pk, location=location, is_active=True)
        if entry.status != 'PENDING':
            return Response({'error': f'{entry.qc_no} is already {entry.get_status_display().lower()}'}, status=status.HTTP_400_BAD_REQUEST)
        if entry.has_decisions:
            return Response(
                {'error': 'Items of this QC entry have already been decided. Approve the entry instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        entry.status = 'REJECTED'
        entry.approved_by = request.user
        entry.approved_at = timezone.now()
        remarks = request.data.get('remarks')
        if remarks:
            entry.remarks = remarks
        entry.save()

    logger.info(f"QC entry {entry.qc_no} rejected by {request.user.username}")
    create_audit_log(
        request=request, action='reject', model_name='QcEntry', object_id=entry.id,
        object_name=entry.qc_no, object_reference=entry.qc_no, changes={'remarks': remarks}, location=location
    )
    return Response(QcEntrySerializer(_entry_queryset(location).get(pk=entry.pk)).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def qc_next_code(request):
    location, error = get_current_location(request)
    if error:
        return error
    return Response({'code': generate_code('QC', QcEntry, 'qc_no', location)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def qc_upload_attachment(request):
    if not (has_permission(request.user, 'create_qc') or has_permission(request.user, 'edit_qc')):
        return forbidden(request, 'create_qc')
    files = request.FILES.getlist('files') or request.FILES.getlist('file')
    if not files:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    subfolder = request.data.get('qc_no') or 'draft'
    try:
        urls = [save_uploaded_file(upload, QC_ATTACHMENT_FOLDER, subfolder) for upload in files]
    except UploadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"User {request.user.username} uploaded {len(urls)} QC attachment(s)")
    return Response({'urls': urls}, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def qc_delete_attachment(request):
    """Delete an uploaded QC attachment by URL"""
    if not (has_permission(request.user, 'create_qc') or has_permission(request.user, 'edit_qc')):
        return forbidden(request, 'edit_qc')
    url = request.query_params.get('url')
    if not url:
        return Response({'error': 'url is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        deleted = delete_uploaded_file(url, QC_ATTACHMENT_FOLDER)
    except UploadError as e:
        logger.warning(f"User {request.user.username} attempted to delete {url}: {e}")
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    if not deleted:
        return Response({'error': 'File not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(status=status.HTTP_204_NO_CONTENT)
