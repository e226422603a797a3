import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.exceptions import ValidationError
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
from dpms.core.utils import create_audit_log, paginated_payload, save_uploaded_file, UploadError
from .models import Inward, InwardLine, Outward, JobWork
from .serializers import (
    InwardSerializer, OutwardSerializer, JobWorkSerializer, JobWorkStatusSerializer, check_inward_source,
)

logger = logging.getLogger('dpms.inventory')

INWARD_ATTACHMENT_FOLDER = 'inward_attachments'


def _serializer_context(request, location):
    return {'request': request, 'location': location, 'user': request.user}


def _date_range(queryset, request, field):
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        queryset = queryset.filter(**{f'{field}__gte': date_from})
    if date_to:
        queryset = queryset.filter(**{f'{field}__lte': date_to})
    return queryset


# ==================== INWARD ====================

def _inward_queryset(location):
    return Inward.objects.select_related('location', 'vendor', 'created_by').prefetch_related(
        'lines__item'
    ).filter(location=location, is_active=True)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def inward_list_create(request):
    """List inwards of the current location or record a new draft inward"""
    location, error = get_current_location(request)
    if error:
        return error

    if request.method == 'GET':
        if not has_permission(request.user, 'view_inward'):
            return forbidden(request, 'view_inward')
        queryset = _inward_queryset(location)
        status_filter = request.query_params.get('status')
        vendor_id = request.query_params.get('vendor')
        search = request.query_params.get('search')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        if search:
            queryset = queryset.filter(
                Q(inward_no__icontains=search) | Q(lines__item__current_name__icontains=search)
            ).distinct()
        queryset = _date_range(queryset, request, 'inward_date')
        return Response(paginated_payload(request, queryset, InwardSerializer))

    if not has_permission(request.user, 'create_inward'):
        return forbidden(request, 'create_inward')

    try:
        serializer = InwardSerializer(data=request.data, context=_serializer_context(request, location))
        if serializer.is_valid():
            inward = serializer.save()
            logger.info(f"Inward {inward.inward_no} created by {request.user.username} at {location}")
            create_audit_log(
                request=request, action='create', model_name='Inward', object_id=inward.id,
                object_name=inward.inward_no, object_reference=inward.inward_no,
                changes={'lines': inward.lines.count()}, location=location
            )
            return Response(InwardSerializer(inward).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Inward validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.warning(f"Duplicate inward number at {location}: {str(e)}")
        return Response(
            {'error': 'The document number was taken by another request, please try again'},
            status=status.HTTP_400_BAD_REQUEST
        )
    except Exception as e:
        logger.error(f"Unexpected error in inward_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def inward_detail(request, pk):
    location, error = get_current_location(request)
    if error:
        return error
    inward = get_object_or_404(_inward_queryset(location), pk=pk)

    if request.method == 'GET':
        if not has_permission(request.user, 'view_inward'):
            return forbidden(request, 'view_inward')
        return Response(InwardSerializer(inward).data)

    if not has_permission(request.user, 'edit_inward'):
        return forbidden(request, 'edit_inward')
    if inward.status != 'DRAFT':
        return Response({'error': f'{inward.inward_no} is already submitted'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method in ('PUT', 'PATCH'):
        serializer = InwardSerializer(
            inward, data=request.data, partial=request.method == 'PATCH',
            context=_serializer_context(request, location)
        )
        if serializer.is_valid():
            serializer.save()
            inward = _inward_queryset(location).get(pk=inward.pk)
            create_audit_log(
                request=request, action='update', model_name='Inward', object_id=inward.id,
                object_name=inward.inward_no, object_reference=inward.inward_no, location=location
            )
            return Response(InwardSerializer(inward).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    inward.is_active = False
    inward.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Inward {inward.inward_no} deleted by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name='Inward', object_id=inward.id,
        object_name=inward.inward_no, object_reference=inward.inward_no, location=location
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


def _complete_returned_job_works(job_work_ids):
    """Mark job works COMPLETED once every item has come back on a submitted inward"""
    completed = []
    for job_work in JobWork.objects.filter(id__in=job_work_ids).exclude(status='COMPLETED'):
        item_ids = set(job_work.items.values_list('item_id', flat=True))
        returned = set(InwardLine.objects.filter(
            source_type='JOB_WORK', source_ref_id=job_work.id, item_id__in=item_ids,
            inward__is_active=True, inward__status='SUBMITTED',
        ).values_list('item_id', flat=True))
        if item_ids and item_ids <= returned:
            job_work.status = 'COMPLETED'
            job_work.save(update_fields=['status', 'updated_at'])
            completed.append(job_work.job_work_no)
    return completed


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inward_submit(request, pk):
    """
    Submit a draft inward.

    Every item moves to IN_QC at the inward location and waits for a QC
    decision. Job works whose items have all come back are completed.
    """
    if not has_permission(request.user, 'create_inward') and not has_permission(request.user, 'edit_inward'):
        return forbidden(request, 'create_inward')
    location, error = get_current_location(request)
    if error:
        return error

    try:
        with transaction.atomic():
            inward = get_object_or_404(
                Inward.objects.select_for_update(), pk=pk, location=location, is_active=True
            )
            if inward.status != 'DRAFT':
                return Response({'error': f'{inward.inward_no} is already submitted'}, status=status.HTTP_400_BAD_REQUEST)
            lines = list(inward.lines.select_related('item'))
            if not lines:
                return Response({'error': 'Inward has no items'}, status=status.HTTP_400_BAD_REQUEST)

            # Items may have moved since the draft was saved
            for line in lines:
                check_inward_source(line.item, line.source_type, line.source_ref_id, location)

            for line in lines:
                line.is_qc_pending = True
                line.is_qc_approved = None
                line.save(update_fields=['is_qc_pending', 'is_qc_approved'])
                line.item.set_state(ItemProcessState.IN_QC, location=inward.location)

            inward.status = 'SUBMITTED'
            inward.submitted_at = timezone.now()
            inward.save(update_fields=['status', 'submitted_at', 'updated_at'])

            job_work_ids = {line.source_ref_id for line in lines if line.source_type == 'JOB_WORK'}
            completed = _complete_returned_job_works(job_work_ids)
    except ValidationError as e:
        detail = e.detail[0] if isinstance(e.detail, list) else e.detail
        logger.warning(f"Inward {pk} submit refused: {detail}")
        return Response({'error': str(detail)}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Inward {inward.inward_no} submitted by {request.user.username} ({len(lines)} items)")
    create_audit_log(
        request=request, action='submit', model_name='Inward', object_id=inward.id,
        object_name=inward.inward_no, object_reference=inward.inward_no,
        changes={'items': [line.item_id for line in lines], 'completed_job_works': completed},
        location=location
    )
    inward = _inward_queryset(location).get(pk=inward.pk)
    return Response(InwardSerializer(inward).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inward_next_code(request):
    location, error = get_current_location(request)
    if error:
        return error
    return Response({'code': generate_code('INW', Inward, 'inward_no', location)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def inward_upload_attachment(request):
    if not (has_permission(request.user, 'create_inward') or has_permission(request.user, 'edit_inward')):
        return forbidden(request, 'create_inward')
    files = request.FILES.getlist('files') or request.FILES.getlist('file')
    if not files:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    subfolder = request.data.get('inward_no') or 'draft'
    try:
        urls = [save_uploaded_file(upload, INWARD_ATTACHMENT_FOLDER, subfolder) for upload in files]
    except UploadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"User {request.user.username} uploaded {len(urls)} inward attachment(s)")
    return Response({'urls': urls}, status=status.HTTP_201_CREATED)


# ==================== OUTWARD ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def outward_list_create(request):
    """List outwards or send in-stock items out to a party"""
    location, error = get_current_location(request)
    if error:
        return error

    if request.method == 'GET':
        if not has_permission(request.user, 'view_movement'):
            return forbidden(request, 'view_movement')
        queryset = Outward.objects.select_related('location', 'party', 'created_by').prefetch_related(
            'lines__item'
        ).filter(location=location, is_active=True)
        party_id = request.query_params.get('party')
        if party_id:
            queryset = queryset.filter(party_id=party_id)
        queryset = _date_range(queryset, request, 'outward_date')
        return Response(paginated_payload(request, queryset, OutwardSerializer))

    if not has_permission(request.user, 'create_movement'):
        return forbidden(request, 'create_movement')

    try:
        serializer = OutwardSerializer(data=request.data, context=_serializer_context(request, location))
        if serializer.is_valid():
            outward = serializer.save()
            logger.info(f"Outward {outward.outward_no} to {outward.party.name} created by {request.user.username}")
            create_audit_log(
                request=request, action='create', model_name='Outward', object_id=outward.id,
                object_name=outward.outward_no, object_reference=outward.outward_no,
                changes={'party': outward.party.name, 'items': list(outward.lines.values_list('item_id', flat=True))},
                location=location
            )
            return Response(OutwardSerializer(outward).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Outward validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.warning(f"Duplicate outward number at {location}: {str(e)}")
        return Response(
            {'error': 'The document number was taken by another request, please try again'},
            status=status.HTTP_400_BAD_REQUEST
        )
    except Exception as e:
        logger.error(f"Unexpected error in outward_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def outward_detail(request, pk):
    if not has_permission(request.user, 'view_movement'):
        return forbidden(request, 'view_movement')
    location, error = get_current_location(request)
    if error:
        return error
    outward = get_object_or_404(
        Outward.objects.select_related('location', 'party', 'created_by'), pk=pk, location=location
    )
    return Response(OutwardSerializer(outward).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def outward_next_code(request):
    location, error = get_current_location(request)
    if error:
        return error
    return Response({'code': generate_code('OUT', Outward, 'outward_no', location)})


# ==================== JOB WORK ====================

def _job_work_queryset(location):
    return JobWork.objects.select_related('location', 'to_party', 'created_by').prefetch_related(
        'items__item'
    ).filter(location=location, is_active=True)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def job_work_list_create(request):
    location, error = get_current_location(request)
    if error:
        return error

    if request.method == 'GET':
        if not has_permission(request.user, 'view_movement'):
            return forbidden(request, 'view_movement')
        queryset = _job_work_queryset(location)
        status_filter = request.query_params.get('status')
        party_id = request.query_params.get('party')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        if party_id:
            queryset = queryset.filter(to_party_id=party_id)
        return Response(paginated_payload(request, queryset, JobWorkSerializer))

    if not has_permission(request.user, 'create_movement'):
        return forbidden(request, 'create_movement')

    try:
        serializer = JobWorkSerializer(data=request.data, context=_serializer_context(request, location))
        if serializer.is_valid():
            job_work = serializer.save()
            logger.info(f"Job work {job_work.job_work_no} to {job_work.to_party.name} created by {request.user.username}")
            create_audit_log(
                request=request, action='create', model_name='JobWork', object_id=job_work.id,
                object_name=job_work.job_work_no, object_reference=job_work.job_work_no,
                changes={'to_party': job_work.to_party.name,
                         'items': list(job_work.items.values_list('item_id', flat=True))},
                location=location
            )
            return Response(JobWorkSerializer(job_work).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Job work validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.warning(f"Duplicate job work number at {location}: {str(e)}")
        return Response(
            {'error': 'The document number was taken by another request, please try again'},
            status=status.HTTP_400_BAD_REQUEST
        )
    except Exception as e:
        logger.error(f"Unexpected error in job_work_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def job_work_detail(request, pk):
    if not has_permission(request.user, 'view_movement'):
        return forbidden(request, 'view_movement')
    location, error = get_current_location(request)
    if error:
        return error
    job_work = get_object_or_404(_job_work_queryset(location), pk=pk)
    return Response(JobWorkSerializer(job_work).data)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def job_work_status(request, pk):
    """Move a job work between PENDING and IN_TRANSIT, or close it once every item is back"""
    if not has_permission(request.user, 'create_movement'):
        return forbidden(request, 'create_movement')
    location, error = get_current_location(request)
    if error:
        return error
    job_work = get_object_or_404(JobWork, pk=pk, location=location, is_active=True)

    serializer = JobWorkStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']

    if job_work.status == 'COMPLETED':
        return Response({'error': f'{job_work.job_work_no} is already completed'}, status=status.HTTP_400_BAD_REQUEST)
    if new_status == 'COMPLETED' and job_work.items.filter(item__current_process=ItemProcessState.IN_JOBWORK).exists():
        return Response(
            {'error': 'Items are still out on this job work. Receive them through an inward first.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    old_status = job_work.status
    job_work.status = new_status
    if serializer.validated_data.get('remarks'):
        job_work.remarks = serializer.validated_data['remarks']
    job_work.save(update_fields=['status', 'remarks', 'updated_at'])
    logger.info(f"Job work {job_work.job_work_no} status {old_status} -> {new_status} by {request.user.username}")
    create_audit_log(
        request=request, action='status_change', model_name='JobWork', object_id=job_work.id,
        object_name=job_work.job_work_no, object_reference=job_work.job_work_no,
        changes={'old_status': old_status, 'new_status': new_status}, location=location
    )
    return Response(JobWorkSerializer(_job_work_queryset(location).get(pk=job_work.pk)).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def job_work_pending(request):
    """Open job works with the items that are still out"""
    location, error = get_current_location(request)
    if error:
        return error
    queryset = _job_work_queryset(location).exclude(status='COMPLETED')
    party_id = request.query_params.get('party')
    if party_id:
        queryset = queryset.filter(to_party_id=party_id)

    results = []
    for job_work in queryset:
        data = JobWorkSerializer(job_work).data
        data['items'] = [row for row in data['items'] if row['current_process'] == ItemProcessState.IN_JOBWORK]
        if data['items']:
            results.append(data)
    return Response(results)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def job_work_next_code(request):
    location, error = get_current_location(request)
    if error:
        return error
    return Response({'code': generate_code('JW', JobWork, 'job_work_no', location)})
