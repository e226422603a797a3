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

from dpms.catalog.models import Item, ItemProcessState
from dpms.core.access import has_permission, forbidden, get_current_location
from dpms.core.numbering import generate_code
from dpms.core.utils import (
    create_audit_log, paginated_payload, save_uploaded_file, UploadError,
)
from .models import DocumentStatus, PurchaseIndent, PurchaseIndentItem, PurchaseOrder
from .serializers import PurchaseIndentSerializer, PurchaseIndentItemSerializer, PurchaseOrderSerializer

logger = logging.getLogger('dpms.purchasing')

QUOTATION_FOLDER = 'quotations'


def _indent_queryset(location):
    return PurchaseIndent.objects.select_related('location', 'created_by', 'approved_by').prefetch_related(
        'items__item__item_type', 'items__item__material'
    ).filter(location=location, is_active=True)


def _order_queryset(location):
    return PurchaseOrder.objects.select_related(
        'vendor', 'location', 'created_by', 'approved_by'
    ).prefetch_related(
        'items__purchase_indent_item__item__item_type',
        'items__purchase_indent_item__item__material',
        'items__purchase_indent_item__purchase_indent',
    ).filter(location=location, is_active=True)


# ==================== PURCHASE INDENTS ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_indent_list_create(request):
    """List purchase indents of the current location or raise a new one"""
    location, error = get_current_location(request)
    if error:
        return error

    if request.method == 'GET':
        if not has_permission(request.user, 'view_pi'):
            return forbidden(request, 'view_pi')
        queryset = _indent_queryset(location)
        status_filter = request.query_params.get('status')
        type_filter = request.query_params.get('type')
        search = request.query_params.get('search')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        if type_filter:
            queryset = queryset.filter(type=type_filter.upper())
        if search:
            queryset = queryset.filter(
                Q(pi_no__icontains=search) | Q(items__item__current_name__icontains=search)
            ).distinct()
        return Response(paginated_payload(request, queryset, PurchaseIndentSerializer))

    if not has_permission(request.user, 'create_pi'):
        return forbidden(request, 'create_pi')

    try:
        serializer = PurchaseIndentSerializer(
            data=request.data, context={'request': request, 'location': location, 'user': request.user}
        )
        if serializer.is_valid():
            indent = serializer.save()
            logger.info(f"Purchase indent {indent.pi_no} created by {request.user.username} at {location}")
            create_audit_log(
                request=request, action='create', model_name='PurchaseIndent', object_id=indent.id,
                object_name=indent.pi_no, object_reference=indent.pi_no,
                changes={'type': indent.type, 'items': indent.items.count()}, location=location
            )
            return Response(PurchaseIndentSerializer(indent).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Purchase indent validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.warning(f"Duplicate purchase indent number at {location}: {str(e)}")
        return Response(
            {'error': 'The document number was taken by another request, please try again'},
            status=status.HTTP_400_BAD_REQUEST
        )
    except Exception as e:
        logger.error(f"Unexpected error in purchase_indent_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_indent_detail(request, pk):
    location, error = get_current_location(request)
    if error:
        return error
    indent = get_object_or_404(_indent_queryset(location), pk=pk)

    if request.method == 'GET':
        if not has_permission(request.user, 'view_pi'):
            return forbidden(request, 'view_pi')
        return Response(PurchaseIndentSerializer(indent).data)

    if not has_permission(request.user, 'edit_pi'):
        return forbidden(request, 'edit_pi')
    if indent.status != DocumentStatus.PENDING:
        return Response(
            {'error': f'Only pending purchase indents can be changed. {indent.pi_no} is {indent.get_status_display()}.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    if request.method in ('PUT', 'PATCH'):
        serializer = PurchaseIndentSerializer(
            indent, data=request.data, partial=request.method == 'PATCH',
            context={'request': request, 'location': location, 'user': request.user}
        )
        if serializer.is_valid():
            indent = serializer.save()
            indent = _indent_queryset(location).get(pk=indent.pk)
            create_audit_log(
                request=request, action='update', model_name='PurchaseIndent', object_id=indent.id,
                object_name=indent.pi_no, object_reference=indent.pi_no,
                changes={'items': list(indent.items.values_list('item_id', flat=True))}, location=location
            )
            return Response(PurchaseIndentSerializer(indent).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE: soft delete and release the items
    with transaction.atomic():
        for line in indent.items.select_related('item'):
            line.item.set_state(ItemProcessState.NOT_IN_STOCK)
        indent.is_active = False
        indent.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Purchase indent {indent.pi_no} deleted by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name='PurchaseIndent', object_id=indent.id,
        object_name=indent.pi_no, object_reference=indent.pi_no, location=location
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


def _decide_indent(request, pk, approve):
    if not has_permission(request.user, 'approve_pi'):
        return forbidden(request, 'approve_pi')
    location, error = get_current_location(request)
    if error:
        return error

    with transaction.atomic():
        indent = get_object_or_404(
            PurchaseIndent.objects.select_for_update(), pk=pk, location=location, is_active=True
        )
        if indent.status != DocumentStatus.PENDING:
            return Response(
                {'error': f'{indent.pi_no} is already {indent.get_status_display().lower()}'},
                status=status.HTTP_400_BAD_REQUEST
            )
        indent.status = DocumentStatus.APPROVED if approve else DocumentStatus.REJECTED
        indent.approved_by = request.user
        indent.approved_at = timezone.now()
        remarks = request.data.get('remarks')
        if remarks:
            indent.remarks = remarks
        indent.save()
        if not approve:
            for line in indent.items.select_related('item'):
                line.item.set_state(ItemProcessState.NOT_IN_STOCK)

    action = 'approve' if approve else 'reject'
    logger.info(f"Purchase indent {indent.pi_no} {action}d by {request.user.username}")
    create_audit_log(
        request=request, action=action, model_name='PurchaseIndent', object_id=indent.id,
        object_name=indent.pi_no, object_reference=indent.pi_no, changes={'status': indent.status},
        location=location
    )
    return Response(PurchaseIndentSerializer(indent).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_indent_approve(request, pk):
    return _decide_indent(request, pk, approve=True)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_indent_reject(request, pk):
    """Reject a pending indent; its items become available again"""
    return _decide_indent(request, pk, approve=False)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_indent_next_code(request):
    location, error = get_current_location(request)
    if error:
        return error
    return Response({'code': generate_code('PI', PurchaseIndent, 'pi_no', location)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_indent_items_with_status(request):
    """Indent lines of the current location with item state and PO assignment"""
    if not has_permission(request.user, 'view_pi'):
        return forbidden(request, 'view_pi')
    location, error = get_current_location(request)
    if error:
        return error
    lines = PurchaseIndentItem.objects.select_related(
        'purchase_indent', 'item__item_type', 'item__material'
    ).filter(purchase_indent__location=location, purchase_indent__is_active=True)
    status_filter = request.query_params.get('status')
    if status_filter:
        lines = lines.filter(purchase_indent__status=status_filter.upper())
    pi_id = request.query_params.get('purchase_indent_id')
    if pi_id:
        lines = lines.filter(purchase_indent_id=pi_id)
    data = PurchaseIndentItemSerializer(lines.order_by('-purchase_indent__created_at', 'id'), many=True).data
    for row in data:
        row['is_in_po'] = row['po_no'] is not None
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_indent_available_item_ids(request):
    """Ids of items that may be put on an indent (optionally while editing one)"""
    location, error = get_current_location(request)
    if error:
        return error
    condition = Q(current_process=ItemProcessState.NOT_IN_STOCK)
    exclude_pi_id = request.query_params.get('exclude_pi_id')
    if exclude_pi_id:
        try:
            exclude_pi_id = int(exclude_pi_id)
        except ValueError:
            return Response({'error': 'exclude_pi_id must be a number'}, status=status.HTTP_400_BAD_REQUEST)
        condition |= Q(current_process=ItemProcessState.IN_PI, pi_items__purchase_indent_id=exclude_pi_id)
    ids = Item.objects.filter(condition, location=location, is_active=True).values_list('id', flat=True).distinct()
    return Response(sorted(ids))


# ==================== PURCHASE ORDERS ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders of the current location or place a new one"""
    location, error = get_current_location(request)
    if error:
        return error

    if request.method == 'GET':
        if not has_permission(request.user, 'view_po'):
            return forbidden(request, 'view_po')
        queryset = _order_queryset(location)
        status_filter = request.query_params.get('status')
        vendor_id = request.query_params.get('vendor')
        search = request.query_params.get('search')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        if search:
            queryset = queryset.filter(Q(po_no__icontains=search) | Q(vendor__name__icontains=search))
        return Response(paginated_payload(request, queryset, PurchaseOrderSerializer))

    if not has_permission(request.user, 'create_po'):
        return forbidden(request, 'create_po')

    try:
        serializer = PurchaseOrderSerializer(
            data=request.data, context={'request': request, 'location': location, 'user': request.user}
        )
        if serializer.is_valid():
            order = serializer.save()
            logger.info(f"Purchase order {order.po_no} created by {request.user.username} at {location}")
            create_audit_log(
                request=request, action='create', model_name='PurchaseOrder', object_id=order.id,
                object_name=order.po_no, object_reference=order.po_no,
                changes={'vendor': order.vendor.name, 'total': str(order.get_total())}, location=location
            )
            return Response(PurchaseOrderSerializer(order).data, status=status.HTTP_201_CREATED)
        logger.warning(f"Purchase order validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.warning(f"Duplicate purchase order number at {location}: {str(e)}")
        return Response(
            {'error': 'The document number was taken by another request, please try again'},
            status=status.HTTP_400_BAD_REQUEST
        )
    except Exception as e:
        logger.error(f"Unexpected error in purchase_order_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_order_detail(request, pk):
    location, error = get_current_location(request)
    if error:
        return error
    order = get_object_or_404(_order_queryset(location), pk=pk)

    if request.method == 'GET':
        if not has_permission(request.user, 'view_po'):
            return forbidden(request, 'view_po')
        return Response(PurchaseOrderSerializer(order).data)

    if not has_permission(request.user, 'edit_po'):
        return forbidden(request, 'edit_po')
    if order.status != DocumentStatus.PENDING:
        return Response(
            {'error': f'Only pending purchase orders can be changed. {order.po_no} is {order.get_status_display()}.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    if order.has_inward:
        return Response({'error': f'{order.po_no} already has an inward'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method in ('PUT', 'PATCH'):
        serializer = PurchaseOrderSerializer(
            order, data=request.data, partial=request.method == 'PATCH',
            context={'request': request, 'location': location, 'user': request.user}
        )
        if serializer.is_valid():
            order = serializer.save()
            order = _order_queryset(location).get(pk=order.pk)
            create_audit_log(
                request=request, action='update', model_name='PurchaseOrder', object_id=order.id,
                object_name=order.po_no, object_reference=order.po_no,
                changes={'total': str(order.get_total())}, location=location
            )
            return Response(PurchaseOrderSerializer(order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        for line in order.items.select_related('purchase_indent_item__item'):
            line.purchase_indent_item.item.set_state(ItemProcessState.IN_PI)
        order.is_active = False
        order.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Purchase order {order.po_no} deleted by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name='PurchaseOrder', object_id=order.id,
        object_name=order.po_no, object_reference=order.po_no, location=location
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


def _decide_order(request, pk, approve):
    if not has_permission(request.user, 'approve_po'):
        return forbidden(request, 'approve_po')
    location, error = get_current_location(request)
    if error:
        return error

    with transaction.atomic():
        order = get_object_or_404(
            PurchaseOrder.objects.select_for_update(), pk=pk, location=location, is_active=True
        )
        if order.status != DocumentStatus.PENDING:
            return Response(
                {'error': f'{order.po_no} is already {order.get_status_display().lower()}'},
                status=status.HTTP_400_BAD_REQUEST
            )
        order.status = DocumentStatus.APPROVED if approve else DocumentStatus.REJECTED
        order.approved_by = request.user
        order.approved_at = timezone.now()
        remarks = request.data.get('remarks')
        if remarks:
            order.remarks = remarks
        order.save()
        if not approve:
            # Rejected orders no longer hold their indent lines
            for line in order.items.select_related('purchase_indent_item__item'):
                line.purchase_indent_item.item.set_state(ItemProcessState.IN_PI)

    action = 'approve' if approve else 'reject'
    logger.info(f"Purchase order {order.po_no} {action}d by {request.user.username}")
    create_audit_log(
        request=request, action=action, model_name='PurchaseOrder', object_id=order.id,
        object_name=order.po_no, object_reference=order.po_no, changes={'status': order.status},
        location=location
    )
    return Response(PurchaseOrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_approve(request, pk):
    return _decide_order(request, pk, approve=True)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_reject(request, pk):
    return _decide_order(request, pk, approve=False)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_order_next_code(request):
    location, error = get_current_location(request)
    if error:
        return error
    return Response({'code': generate_code('PO', PurchaseOrder, 'po_no', location)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_order_approved(request):
    """Approved orders that still have items waiting to be inwarded"""
    location, error = get_current_location(request)
    if error:
        return error
    queryset = _order_queryset(location).filter(status=DocumentStatus.APPROVED)
    vendor_id = request.query_params.get('vendor')
    if vendor_id:
        queryset = queryset.filter(vendor_id=vendor_id)

    results = []
    for order in queryset:
        data = PurchaseOrderSerializer(order).data
        data['items'] = [
            line for line in data['items'] if line['current_process'] == ItemProcessState.IN_PO
        ]
        if data['items']:
            results.append(data)
    return Response(results)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_order_approved_items_for_edit(request):
    """Approved indent lines free to be put on an order (or already on `exclude_po_id`)"""
    location, error = get_current_location(request)
    if error:
        return error
    lines = PurchaseIndentItem.objects.select_related(
        'purchase_indent', 'item__item_type', 'item__material'
    ).filter(
        purchase_indent__location=location,
        purchase_indent__is_active=True,
        purchase_indent__status=DocumentStatus.APPROVED,
        item__is_active=True,
    )
    taken = Q(po_items__purchase_order__is_active=True) & ~Q(po_items__purchase_order__status=DocumentStatus.REJECTED)
    exclude_po_id = request.query_params.get('exclude_po_id')
    if exclude_po_id:
        try:
            taken &= ~Q(po_items__purchase_order_id=int(exclude_po_id))
        except ValueError:
            return Response({'error': 'exclude_po_id must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    taken_ids = PurchaseIndentItem.objects.filter(taken).values_list('id', flat=True)
    lines = lines.exclude(id__in=taken_ids).order_by('purchase_indent__pi_no', 'id')
    return Response(PurchaseIndentItemSerializer(lines, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def purchase_order_upload_quotation(request):
    """Store quotation files under quotations/<po_no or draft>/ and return their URLs"""
    if not (has_permission(request.user, 'create_po') or has_permission(request.user, 'edit_po')):
        return forbidden(request, 'create_po')
    files = request.FILES.getlist('files') or request.FILES.getlist('file')
    if not files:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    subfolder = request.data.get('po_no') or 'draft'
    urls = []
    try:
        for upload in files:
            urls.append(save_uploaded_file(upload, QUOTATION_FOLDER, subfolder))
    except UploadError as e:
        logger.warning(f"Quotation upload rejected for {request.user.username}: {e}")
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"User {request.user.username} uploaded {len(urls)} quotation file(s) to {subfolder}")
    return Response({'urls': urls}, status=status.HTTP_201_CREATED)
