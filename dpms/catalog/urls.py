from django.urls import path
from .views import (
    master_list_create, master_detail, master_active,
    item_list_create, item_detail, item_active, item_change_process,
    item_change_logs, item_revert_change, item_export, item_validate, item_import,
)

urlpatterns = [
    # Masters
    path('masters/<slug:kind>/', master_list_create, name='master-list-create'),
    path('masters/<slug:kind>/active/', master_active, name='master-active'),
    path('masters/<slug:kind>/<int:pk>/', master_detail, name='master-detail'),
    # Items
    path('items/', item_list_create, name='item-list-create'),
    path('items/active/', item_active, name='item-active'),
    path('items/change-process/', item_change_process, name='item-change-process'),
    path('items/export/', item_export, name='item-export'),
    path('items/validate/', item_validate, name='item-validate'),
    path('items/import/', item_import, name='item-import'),
    path('items/<int:pk>/', item_detail, name='item-detail'),
    path('items/<int:pk>/change-logs/', item_change_logs, name='item-change-logs'),
    path('items/<int:pk>/revert-change/', item_revert_change, name='item-revert-change'),
]
