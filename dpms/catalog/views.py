import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.http import Http404
from django.db import IntegrityError, transaction
from django.db.models import Q

from dpms.core.access import has_permission, forbidden, get_current_location
from dpms.core.excel import ExcelReadError, excel_response
from dpms.core.model_cache import get_cached_master_list, cache_master_list
from dpms.core.utils import create_audit_log, paginated_payload
from .excel import export_items, validate_items, import_items
from .filters import ItemFilter
from .models import Item, ItemChangeLog, ItemProcessState
from .serializers import (
    MASTER_SERIALIZERS, ItemSerializer, ItemChangeLogSerializer, ChangeProcessSerializer,
)

logger = logging.getLogger('dpms.catalog')


def _master_config(kind):
    try:
        return MASTER_SERIALIZERS[kind]
    except KeyError:
        raise Http404(f"Unknown master '{kind}'")


# Masters (item types, materials, owner types, item statuses)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def master_list_create(request, kind):
    """List or create rows of one master table"""
    serializer_class, flag = _master_config(kind)
    model = serializer_class.Meta.model

    if request.method == 'GET':
        queryset = model.objects.all()
        search = request.query_params.get('search')
        is_active = request.query_params.get('is_active')
        if search:
            queryset = queryset.filter(name__icontains=search)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')
        if request.query_params.get('page'):
            return Response(paginated_payload(request, queryset, serializer_class, default_limit=25))
        return Response(serializer_class(queryset, many=True).data)

    if not has_permission(request.user, flag):
        return forbidden(request, flag)

    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        try:
            obj = serializer.save()
        except IntegrityError as e:
            logger.error(f"IntegrityError creating {kind}: {str(e)}", exc_info=True)
            return Response({'error': 'A record with this name already exists'}, status=status.HTTP_400_BAD_REQUEST)
        logger.info(f"{model.__name__} '{obj.name}' created by {request.user.username}")
        create_audit_log(
            request=request, action='create', model_name=model.__name__, object_id=obj.id, object_name=obj.name
        )
        return Response(serializer_class(obj).data, status=status.HTTP_201_CREATED)
    logger.warning(f"{model.__name__} validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def master_detail(request, kind, pk):
    serializer_class, flag = _master_config(kind)
    model = serializer_class.Meta.model
    obj = get_object_or_404(model, pk=pk)

    if request.method == 'GET':
        return Response(serializer_class(obj).data)

    if not has_permission(request.user, flag):
        return forbidden(request, flag)

    if request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(obj, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            try:
                serializer.save()
            except IntegrityError:
                return Response({'error': 'A record with this name already exists'}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(
                request=request, action='update', model_name=model.__name__, object_id=obj.id,
                object_name=obj.name, changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    obj.is_active = False
    obj.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"{model.__name__} {pk} deactivated by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name=model.__name__, object_id=obj.id, object_name=obj.name
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def master_active(request, kind):
    """Active rows of a master table, served from cache when possible"""
    serializer_class, _flag = _master_config(kind)
    data = get_cached_master_list(kind)
    if data is None:
        queryset = serializer_class.Meta.model.objects.filter(is_active=True)
        data = serializer_class(queryset, many=True).data
        cache_master_list(kind, data)
    return Response(data)


# Items
def _location_items(location):
    return Item.objects.select_related(
        'item_type', 'material', 'owner_type', 'status', 'location', 'current_location', 'current_party'
    ).filter(Q(location=location) | Q(current_location=location))


def _locked_item(location):
    return Item.objects.select_for_update().filter(Q(location=location) | Q(current_location=location))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def item_list_create(request):
    """List items of the current location or create a new one"""
    location, error = get_current_location(request)
    if error:
        return error

    if request.method == 'GET':
        filterset = ItemFilter(request.query_params, queryset=_location_items(location))
        queryset = filterset.qs.order_by('main_part_name')
        return Response(paginated_payload(request, queryset, ItemSerializer, default_limit=25))

    if not has_permission(request.user, 'manage_item'):
        return forbidden(request, 'manage_item')

    try:
        serializer = ItemSerializer(data=request.data)
        if serializer.is_valid():
            try:
                item = serializer.save(location=location, current_process=ItemProcessState.NOT_IN_STOCK)
            except IntegrityError as e:
                logger.error(f"IntegrityError creating item: {str(e)}", exc_info=True)
                return Response(
                    {'error': 'An item with this main part name or drawing no already exists'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            logger.info(f"Item '{item.main_part_name}' created by {request.user.username} at {location}")
            create_audit_log(
                request=request, action='create', model_name='Item', object_id=item.id,
                object_name=item.main_part_name, object_reference=item.drawing_no, location=location
            )
            return Response(ItemSerializer(item).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Item creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in item_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def item_detail(request, pk):
    """Retrieve, update or deactivate an item"""
    location, error = get_current_location(request)
    if error:
        return error
    item = get_object_or_404(_location_items(location), pk=pk)

    if request.method == 'GET':
        return Response(ItemSerializer(item).data)

    if not has_permission(request.user, 'manage_item'):
        return forbidden(request, 'manage_item')

    if request.method in ('PUT', 'PATCH'):
        serializer = ItemSerializer(item, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            try:
                serializer.save()
            except IntegrityError:
                return Response({'error': 'Drawing no is already used by another item'}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(
                request=request, action='update', model_name='Item', object_id=item.id,
                object_name=item.main_part_name, changes={k: str(v) for k, v in serializer.validated_data.items()},
                location=item.location
            )
            return Response(ItemSerializer(item).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if item.current_process not in (ItemProcessState.NOT_IN_STOCK, ItemProcessState.IN_STOCK):
        return Response(
            {'error': f"Item is {item.get_current_process_display()} and cannot be deleted"},
            status=status.HTTP_400_BAD_REQUEST
        )
    item.is_active = False
    item.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Item {pk} deactivated by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name='Item', object_id=item.id,
        object_name=item.main_part_name, location=item.location
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def item_active(request):
    location, error = get_current_location(request)
    if error:
        return error
    queryset = _location_items(location).filter(is_active=True)
    process = request.query_params.get('current_process')
    if process:
        queryset = queryset.filter(current_process=process)
    return Response(ItemSerializer(queryset.order_by('main_part_name'), many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def item_change_process(request):
    """Rename/re-revision an in-stock item and record the change"""
    if not has_permission(request.user, 'manage_changes'):
        return forbidden(request, 'manage_changes')

    serializer = ChangeProcessSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    location, error = get_current_location(request)
    if error:
        return error

    with transaction.atomic():
        item = get_object_or_404(_locked_item(location), pk=data['item_id'], is_active=True)
        if item.current_process != ItemProcessState.IN_STOCK:
            return Response(
                {'error': f"Only in-stock items can be changed. '{item.current_name}' is {item.get_current_process_display()}."},
                status=status.HTTP_400_BAD_REQUEST
            )
        new_revision = (data.get('new_revision') or '').strip() or item.revision_no
        log = ItemChangeLog.objects.create(
            item=item,
            old_name=item.current_name,
            new_name=data['new_name'],
            old_revision=item.revision_no,
            new_revision=new_revision,
            change_type=data['change_type'],
            remarks=data.get('remarks'),
            created_by=request.user,
        )
        item.current_name = data['new_name']
        item.revision_no = new_revision
        item.save(update_fields=['current_name', 'revision_no', 'updated_at'])

    logger.info(f"Item {item.id} changed '{log.old_name}' -> '{log.new_name}' by {request.user.username}")
    create_audit_log(
        request=request, action='item_change', model_name='Item', object_id=item.id,
        object_name=item.main_part_name, object_reference=log.change_type,
        changes={'old_name': log.old_name, 'new_name': log.new_name,
                 'old_revision': log.old_revision, 'new_revision': log.new_revision},
        location=item.location
    )
    return Response({
        'item': ItemSerializer(item).data,
        'change_log': ItemChangeLogSerializer(log).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def item_change_logs(request, pk):
    location, error = get_current_location(request)
    if error:
        return error
    item = get_object_or_404(_location_items(location), pk=pk)
    logs = item.change_logs.select_related('created_by')
    return Response(ItemChangeLogSerializer(logs, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def item_revert_change(request, pk):
    """Undo the latest change that has not been reverted yet"""
    if not has_permission(request.user, 'revert_changes'):
        return forbidden(request, 'revert_changes')
    location, error = get_current_location(request)
    if error:
        return error

    with transaction.atomic():
        item = get_object_or_404(_locked_item(location), pk=pk)
        log = item.change_logs.filter(is_reverted=False).order_by('-created_at', '-id').first()
        if log is None:
            return Response({'error': 'No change to revert'}, status=status.HTTP_400_BAD_REQUEST)
        item.current_name = log.old_name
        item.revision_no = log.old_revision
        item.save(update_fields=['current_name', 'revision_no', 'updated_at'])
        log.is_reverted = True
        log.save(update_fields=['is_reverted'])

    logger.info(f"Item {item.id} change {log.id} reverted by {request.user.username}")
    create_audit_log(
        request=request, action='item_revert', model_name='Item', object_id=item.id,
        object_name=item.main_part_name, changes={'change_log_id': log.id, 'restored_name': log.old_name},
        location=item.location
    )
    return Response({
        'item': ItemSerializer(item).data,
        'change_log': ItemChangeLogSerializer(log).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def item_export(request):
    location, error = get_current_location(request)
    if error:
        return error
    filterset = ItemFilter(request.query_params, queryset=_location_items(location))
    logger.info(f"User {request.user.username} exported items of {location}")
    return excel_response(export_items(filterset.qs.order_by('main_part_name')), 'items.xlsx')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def item_validate(request):
    if not has_permission(request.user, 'manage_item'):
        return forbidden(request, 'manage_item')
    upload = request.FILES.get('file')
    if not upload:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        validation = validate_items(upload)
    except ExcelReadError as e:
        logger.warning(f"Item validation failed to read file: {e}")
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(validation.as_dict())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def item_import(request):
    """Create every valid row of an item spreadsheet at the current location"""
    if not has_permission(request.user, 'manage_item'):
        return forbidden(request, 'manage_item')
    location, error = get_current_location(request)
    if error:
        return error
    upload = request.FILES.get('file')
    if not upload:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        validation = validate_items(upload)
        with transaction.atomic():
            created = import_items(validation, location)
    except ExcelReadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.error(f"Item import failed: {str(e)}", exc_info=True)
        return Response({'error': f'Import failed: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"User {request.user.username} imported {len(created)} items at {location}")
    create_audit_log(
        request=request, action='import', model_name='Item', object_id='bulk',
        changes={'imported': len(created), 'total_rows': validation.total_rows}, location=location
    )
    return Response({
        'imported': len(created),
        'total_rows': validation.total_rows,
        'errors': validation.errors(),
        'message': f'{len(created)} items imported successfully',
    })
