"""
URL configuration for the DPMS project.

Every application exposes its REST endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "DPMS Administration"
admin.site.site_title = "DPMS Admin Portal"
admin.site.index_title = "Die & Pattern Management"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('dpms.core.urls')),
    path('api/v1/', include('dpms.locations.urls')),
    path('api/v1/', include('dpms.parties.urls')),
    path('api/v1/', include('dpms.catalog.urls')),
    path('api/v1/', include('dpms.purchasing.urls')),
    path('api/v1/', include('dpms.inventory.urls')),
    path('api/v1/', include('dpms.quality.urls')),
    path('api/v1/', include('dpms.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
