import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import IntegrityError, transaction
from django.db.models import Q

from dpms.core.access import has_permission, forbidden
from dpms.core.excel import ExcelReadError, excel_response
from dpms.core.utils import create_audit_log, paginated_payload
from .excel import export_companies, validate_companies, import_companies
from .models import Company, Location
from .serializers import CompanySerializer, LocationSerializer

logger = logging.getLogger('dpms.locations')


# Company views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def company_list_create(request):
    """List companies or create a new company (create requires manage_company)"""
    try:
        if request.method == 'GET':
            logger.info(f"User {request.user.username} requested company list")
            companies = Company.objects.prefetch_related('locations').all()

            search = request.query_params.get('search')
            is_active = request.query_params.get('is_active')
            if search:
                companies = companies.filter(
                    Q(name__icontains=search) |
                    Q(gst_no__icontains=search) |
                    Q(city__icontains=search)
                )
            if is_active is not None:
                companies = companies.filter(is_active=is_active.lower() == 'true')

            return Response(CompanySerializer(companies.order_by('name'), many=True).data)

        if not has_permission(request.user, 'manage_company'):
            return forbidden(request, 'manage_company')

        logger.info(f"User {request.user.username} creating company with data: {request.data}")
        serializer = CompanySerializer(data=request.data)
        if serializer.is_valid():
            try:
                company = serializer.save()
            except IntegrityError as e:
                logger.error(f"IntegrityError creating company: {str(e)}", exc_info=True)
                return Response({'error': 'A company with this name already exists'}, status=status.HTTP_400_BAD_REQUEST)
            logger.info(f"Company '{company.name}' created successfully by {request.user.username}")
            create_audit_log(
                request=request, action='create', model_name='Company', object_id=company.id,
                object_name=company.name, object_reference=company.gst_no
            )
            return Response(CompanySerializer(company).data, status=status.HTTP_201_CREATED)

        logger.warning(f"Company creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in company_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def company_detail(request, pk):
    """Retrieve, update or deactivate a company (writes require manage_company)"""
    company = get_object_or_404(Company, pk=pk)

    if request.method == 'GET':
        return Response(CompanySerializer(company).data)

    if not has_permission(request.user, 'manage_company'):
        return forbidden(request, 'manage_company')

    if request.method in ('PUT', 'PATCH'):
        logger.info(f"User {request.user.username} updating company {pk} with data: {request.data}")
        serializer = CompanySerializer(company, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Company {pk} updated successfully")
            create_audit_log(
                request=request, action='update', model_name='Company', object_id=company.id,
                object_name=company.name, changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        logger.warning(f"Company update validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE is a soft delete; locations follow their company
    logger.info(f"User {request.user.username} deactivating company {pk} ({company.name})")
    with transaction.atomic():
        company.is_active = False
        company.save(update_fields=['is_active', 'updated_at'])
        company.locations.update(is_active=False)
    create_audit_log(
        request=request, action='delete', model_name='Company', object_id=company.id, object_name=company.name
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def company_active(request):
    companies = Company.objects.filter(is_active=True).order_by('name')
    return Response(CompanySerializer(companies, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def company_export(request):
    if not has_permission(request.user, 'manage_company'):
        return forbidden(request, 'manage_company')
    logger.info(f"User {request.user.username} exported companies")
    return excel_response(export_companies(), 'companies.xlsx')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def company_validate(request):
    """Dry-run a company spreadsheet and report how each row would be handled"""
    if not has_permission(request.user, 'manage_company'):
        return forbidden(request, 'manage_company')
    upload = request.FILES.get('file')
    if not upload:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        validation = validate_companies(upload)
    except ExcelReadError as e:
        logger.warning(f"Company validation failed to read file: {e}")
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(validation.as_dict())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def company_import(request):
    """Create every valid row of a company spreadsheet"""
    if not has_permission(request.user, 'manage_company'):
        return forbidden(request, 'manage_company')
    upload = request.FILES.get('file')
    if not upload:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        validation = validate_companies(upload)
        with transaction.atomic():
            created = import_companies(validation)
    except ExcelReadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError as e:
        logger.error(f"Company import failed: {str(e)}", exc_info=True)
        return Response({'error': f'Import failed: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"User {request.user.username} imported {len(created)} companies")
    create_audit_log(
        request=request, action='import', model_name='Company', object_id='bulk',
        changes={'imported': len(created), 'total_rows': validation.total_rows}
    )
    return Response({
        'imported': len(created),
        'total_rows': validation.total_rows,
        'errors': validation.errors(),
        'message': f'{len(created)} companies imported successfully',
    })


# Location views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def location_list_create(request):
    """List locations or create a new location (create requires manage_location)"""
    if request.method == 'GET':
        locations = Location.objects.select_related('company').all()
        company_id = request.query_params.get('company')
        is_active = request.query_params.get('is_active')
        search = request.query_params.get('search')
        if company_id:
            locations = locations.filter(company_id=company_id)
        if is_active is not None:
            locations = locations.filter(is_active=is_active.lower() == 'true')
        if search:
            locations = locations.filter(Q(name__icontains=search) | Q(company__name__icontains=search))
        if request.query_params.get('page'):
            return Response(paginated_payload(request, locations, LocationSerializer))
        return Response(LocationSerializer(locations, many=True).data)

    if not has_permission(request.user, 'manage_location'):
        return forbidden(request, 'manage_location')

    serializer = LocationSerializer(data=request.data)
    if serializer.is_valid():
        try:
            location = serializer.save()
        except IntegrityError as e:
            logger.error(f"IntegrityError creating location: {str(e)}", exc_info=True)
            return Response({'error': 'A location with this name already exists for the company'}, status=status.HTTP_400_BAD_REQUEST)
        logger.info(f"Location '{location}' created by {request.user.username}")
        create_audit_log(
            request=request, action='create', model_name='Location', object_id=location.id,
            object_name=location.name, object_reference=location.company.name, location=location
        )
        return Response(LocationSerializer(location).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Location creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def location_detail(request, pk):
    """Retrieve, update or deactivate a location"""
    location = get_object_or_404(Location.objects.select_related('company'), pk=pk)

    if request.method == 'GET':
        return Response(LocationSerializer(location).data)

    if not has_permission(request.user, 'manage_location'):
        return forbidden(request, 'manage_location')

    if request.method in ('PUT', 'PATCH'):
        serializer = LocationSerializer(location, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request, action='update', model_name='Location', object_id=location.id,
                object_name=location.name, changes={k: str(v) for k, v in serializer.validated_data.items()},
                location=location
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    location.is_active = False
    location.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Location {pk} deactivated by {request.user.username}")
    create_audit_log(
        request=request, action='delete', model_name='Location', object_id=location.id,
        object_name=location.name, location=location
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def location_active(request):
    locations = Location.objects.select_related('company').filter(is_active=True, company__is_active=True)
    company_id = request.query_params.get('company')
    if company_id:
        locations = locations.filter(company_id=company_id)
    return Response(LocationSerializer(locations, many=True).data)
