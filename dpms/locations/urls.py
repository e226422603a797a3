from django.urls import path
from .views import (
    company_list_create, company_detail, company_active,
    company_export, company_validate, company_import,
    location_list_create, location_detail, location_active,
)

urlpatterns = [
    path('companies/', company_list_create, name='company-list-create'),
    path('companies/active/', company_active, name='company-active'),
    path('companies/export/', company_export, name='company-export'),
    path('companies/validate/', company_validate, name='company-validate'),
    path('companies/import/', company_import, name='company-import'),
    path('companies/<int:pk>/', company_detail, name='company-detail'),
    path('locations/', location_list_create, name='location-list-create'),
    path('locations/active/', location_active, name='location-active'),
    path('locations/<int:pk>/', location_detail, name='location-detail'),
]
