import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404

from dpms.catalog.models import Item, ItemChangeLog, ItemProcessState
from dpms.core.access import has_permission, forbidden, get_current_location
from dpms.core.utils import paginated_payload
from dpms.inventory.models import Inward, InwardLine, Outward, OutwardLine, JobWork, JobWorkItem
from dpms.purchasing.models import DocumentStatus, PurchaseIndent, PurchaseIndentItem, PurchaseOrder, PurchaseOrderItem
from dpms.quality.models import QcItem
from dpms.quality.serializers import pending_inward_lines
from .serializers import InventoryStatusSerializer

logger = logging.getLogger('dpms.reports')


def _location_items(location):
    return Item.objects.filter(Q(location=location) | Q(current_location=location), is_active=True)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Headline counts for the current location"""
    if not has_permission(request.user, 'view_dashboard'):
        return forbidden(request, 'view_dashboard')
    location, error = get_current_location(request)
    if error:
        return error

    items = _location_items(location)
    by_process = {state: 0 for state in ItemProcessState.values}
    for row in items.values('current_process').annotate(total=Count('id')):
        by_process[row['current_process']] = row['total']

    recent_inwards = Inward.objects.select_related('vendor').filter(
        location=location, is_active=True
    ).annotate(line_count=Count('lines')).order_by('-inward_date', '-id')[:5]
    recent_outwards = Outward.objects.select_related('party').filter(
        location=location, is_active=True
    ).annotate(line_count=Count('lines')).order_by('-outward_date', '-id')[:5]

    logger.debug(f"Dashboard stats requested by {request.user.username} for {location}")
    return Response({
        'location': {'id': location.id, 'name': location.name, 'company': location.company.name},
        'total_items': items.count(),
        'items_by_process': by_process,
        'pending_pis': PurchaseIndent.objects.filter(
            location=location, is_active=True, status=DocumentStatus.PENDING
        ).count(),
        'pending_pos': PurchaseOrder.objects.filter(
            location=location, is_active=True, status=DocumentStatus.PENDING
        ).count(),
        'pending_qc': pending_inward_lines(location).count(),
        'open_job_works': JobWork.objects.filter(location=location, is_active=True).exclude(status='COMPLETED').count(),
        'recent_inwards': [
            {
                'id': inward.id,
                'inward_no': inward.inward_no,
                'inward_date': inward.inward_date,
                'vendor_name': inward.vendor.name if inward.vendor else None,
                'status': inward.status,
                'items': inward.line_count,
            }
            for inward in recent_inwards
        ],
        'recent_outwards': [
            {
                'id': outward.id,
                'outward_no': outward.outward_no,
                'outward_date': outward.outward_date,
                'party_name': outward.party.name,
                'items': outward.line_count,
            }
            for outward in recent_outwards
        ],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_status(request):
    """Items of the current location with where they are right now"""
    if not has_permission(request.user, 'view_reports'):
        return forbidden(request, 'view_reports')
    location, error = get_current_location(request)
    if error:
        return error

    items = _location_items(location).select_related(
        'item_type', 'material', 'status', 'owner_type', 'current_location', 'current_party'
    ).order_by('main_part_name')
    process = request.query_params.get('current_process')
    search = request.query_params.get('search')
    if process:
        items = items.filter(current_process=process.upper())
    if search:
        items = items.filter(
            Q(main_part_name__icontains=search) | Q(current_name__icontains=search) | Q(drawing_no__icontains=search)
        )

    return Response(paginated_payload(request, items, InventoryStatusSerializer, default_limit=50))


def _event(timestamp, event_type, document_no, holder=None, details=None):
    return {
        'date': timestamp,
        'type': event_type,
        'document_no': document_no,
        'holder': holder,
        'details': details,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movement_ledger(request):
    """Chronological history of one item across every document flow"""
    if not has_permission(request.user, 'view_reports'):
        return forbidden(request, 'view_reports')
    location, error = get_current_location(request)
    if error:
        return error
    item_id = request.query_params.get('item_id')
    if not item_id:
        return Response({'error': 'item_id is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        item = get_object_or_404(
            Item.objects.select_related('location').filter(Q(location=location) | Q(current_location=location)),
            pk=int(item_id)
        )
    except ValueError:
        return Response({'error': 'item_id must be a number'}, status=status.HTTP_400_BAD_REQUEST)

    events = []
    for line in PurchaseIndentItem.objects.select_related('purchase_indent__location').filter(
        item=item, purchase_indent__is_active=True
    ):
        indent = line.purchase_indent
        events.append(_event(indent.created_at, 'PI', indent.pi_no, indent.location.name,
                             f"{indent.get_type_display()} ({indent.get_status_display()})"))
    for line in PurchaseOrderItem.objects.select_related('purchase_order__vendor').filter(
        purchase_indent_item__item=item, purchase_order__is_active=True
    ):
        order = line.purchase_order
        events.append(_event(order.created_at, 'PO', order.po_no, order.vendor.name,
                             f"Rate {line.rate} ({order.get_status_display()})"))
    for line in InwardLine.objects.select_related('inward__location').filter(item=item, inward__is_active=True):
        inward = line.inward
        events.append(_event(inward.submitted_at or inward.created_at, 'INWARD', inward.inward_no,
                             inward.location.name, f"{line.get_source_type_display()} ({inward.get_status_display()})"))
    for qc_item in QcItem.objects.select_related('qc_entry__location').filter(
        inward_line__item=item, qc_entry__is_active=True, is_approved__isnull=False
    ):
        entry = qc_item.qc_entry
        events.append(_event(qc_item.decided_at or entry.updated_at, 'QC', entry.qc_no, entry.location.name,
                             'Approved' if qc_item.is_approved else 'Rejected'))
    for line in OutwardLine.objects.select_related('outward__party').filter(item=item, outward__is_active=True):
        outward = line.outward
        events.append(_event(outward.created_at, 'OUTWARD', outward.outward_no, outward.party.name, line.remarks))
    for line in JobWorkItem.objects.select_related('job_work__to_party').filter(item=item, job_work__is_active=True):
        job_work = line.job_work
        events.append(_event(job_work.created_at, 'JOB_WORK', job_work.job_work_no, job_work.to_party.name,
                             job_work.get_status_display()))
    for log in ItemChangeLog.objects.filter(item=item):
        details = f"{log.old_name} -> {log.new_name}"
        if log.is_reverted:
            details += ' (reverted)'
        events.append(_event(log.created_at, 'CHANGE', log.get_change_type_display(), None, details))

    events.sort(key=lambda e: e['date'])
    return Response({
        'item': {
            'id': item.id,
            'main_part_name': item.main_part_name,
            'current_name': item.current_name,
            'current_process': item.current_process,
            'holder': item.holder_name,
        },
        'events': events,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def qc_summary(request):
    if not has_permission(request.user, 'view_reports'):
        return forbidden(request, 'view_reports')
    location, error = get_current_location(request)
    if error:
        return error

    qc_items = QcItem.objects.filter(qc_entry__location=location, qc_entry__is_active=True)
    totals = qc_items.aggregate(
        total=Count('id'),
        approved=Count('id', filter=Q(is_approved=True)),
        rejected=Count('id', filter=Q(is_approved=False)),
        pending=Count('id', filter=Q(is_approved__isnull=True)),
    )
    recent = qc_items.select_related('qc_entry', 'inward_line__item').filter(
        is_approved__isnull=False
    ).order_by('-decided_at', '-id')[:10]

    return Response({
        **totals,
        'recent': [
            {
                'qc_no': qi.qc_entry.qc_no,
                'item_id': qi.inward_line.item_id,
                'item_name': qi.inward_line.item.current_name,
                'is_approved': qi.is_approved,
                'remarks': qi.remarks,
                'decided_at': qi.decided_at,
            }
            for qi in recent
        ],
    })
