from django.urls import path
from . import views

urlpatterns = [
    path('dashboard/stats/', views.dashboard_stats, name='dashboard-stats'),
    path('item-reports/inventory-status/', views.inventory_status, name='inventory-status'),
    path('item-reports/movement-ledger/', views.movement_ledger, name='movement-ledger'),
    path('item-reports/qc-summary/', views.qc_summary, name='qc-summary'),
]
