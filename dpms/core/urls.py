from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, logout, validate_token, user_me,
    user_list_create, user_detail, user_permissions, my_permissions,
    software_settings, setting_list_create, setting_detail,
    audit_log_list, audit_log_detail,
    reset_system,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/validate/', validate_token, name='validate-token'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/permissions/', user_permissions, name='user-permissions'),

    # Setting endpoints
    path('settings/permissions/me/', my_permissions, name='my-permissions'),
    path('settings/software/', software_settings, name='software-settings'),
    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/<int:pk>/', setting_detail, name='setting-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    path('maintenance/reset-system/', reset_system, name='reset-system'),
]
