import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import IntegrityError
from django.db.models import Q

from dpms.core.access import has_permission, forbidden
from dpms.core.utils import create_audit_log, paginated_payload
from .models import Party
from .serializers import PartySerializer

logger = logging.getLogger('dpms.parties')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def party_list_create(request):
    """List all parties or create a new party"""
    if request.method == 'GET':
        queryset = Party.objects.select_related('company').all().order_by('name')
        search = request.query_params.get('search', None)
        is_active = request.query_params.get('is_active', None)
        company_id = request.query_params.get('company', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(phone__icontains=search) |
                Q(party_code__icontains=search) |
                Q(email__icontains=search) |
                Q(contact_person__icontains=search)
            )
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')
        if company_id:
            queryset = queryset.filter(company_id=company_id)
        return Response(paginated_payload(request, queryset, PartySerializer, default_limit=25))

    if not has_permission(request.user, 'manage_party'):
        return forbidden(request, 'manage_party')

    serializer = PartySerializer(data=request.data)
    if serializer.is_valid():
        try:
            party = serializer.save()
        except IntegrityError as e:
            logger.error(f"IntegrityError creating party: {str(e)}", exc_info=True)
            return Response({'error': 'A party with this code already exists'}, status=status.HTTP_400_BAD_REQUEST)
        logger.info(f"Party '{party.name}' created by {request.user.username}")
        create_audit_log(
            request=request, action='create', model_name='Party', object_id=party.id,
            object_name=party.name, object_reference=party.party_code
        )
        return Response(PartySerializer(party).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Party creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def party_detail(request, pk):
    """Retrieve, update or deactivate a party"""
    party = get_object_or_404(Party, pk=pk)

    if request.method == 'GET':
        return Response(PartySerializer(party).data)

    if not has_permission(request.user, 'manage_party'):
        return forbidden(request, 'manage_party')

    if request.method in ('PUT', 'PATCH'):
        serializer = PartySerializer(party, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request, action='update', model_name='Party', object_id=party.id,
                object_name=party.name, changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    party.is_active = False
    party.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Party {pk} deactivated by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name='Party', object_id=party.id, object_name=party.name
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def party_active(request):
    parties = Party.objects.filter(is_active=True).order_by('name')
    return Response(PartySerializer(parties, many=True).data)
