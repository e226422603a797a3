from django.urls import path
from .views import (
    purchase_indent_list_create, purchase_indent_detail, purchase_indent_approve, purchase_indent_reject,
    purchase_indent_next_code, purchase_indent_items_with_status, purchase_indent_available_item_ids,
    purchase_order_list_create, purchase_order_detail, purchase_order_approve, purchase_order_reject,
    purchase_order_next_code, purchase_order_approved, purchase_order_approved_items_for_edit,
    purchase_order_upload_quotation,
)

urlpatterns = [
    # Purchase indents
    path('purchase-indents/', purchase_indent_list_create, name='purchase-indent-list-create'),
    path('purchase-indents/next-code/', purchase_indent_next_code, name='purchase-indent-next-code'),
    path('purchase-indents/items-with-status/', purchase_indent_items_with_status, name='purchase-indent-items-with-status'),
    path('purchase-indents/available-item-ids/', purchase_indent_available_item_ids, name='purchase-indent-available-item-ids'),
    path('purchase-indents/<int:pk>/', purchase_indent_detail, name='purchase-indent-detail'),
    path('purchase-indents/<int:pk>/approve/', purchase_indent_approve, name='purchase-indent-approve'),
    path('purchase-indents/<int:pk>/reject/', purchase_indent_reject, name='purchase-indent-reject'),

    # Purchase orders
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/next-code/', purchase_order_next_code, name='purchase-order-next-code'),
    path('purchase-orders/approved/', purchase_order_approved, name='purchase-order-approved'),
    path('purchase-orders/approved-items-for-edit/', purchase_order_approved_items_for_edit, name='purchase-order-approved-items-for-edit'),
    path('purchase-orders/upload-quotation/', purchase_order_upload_quotation, name='purchase-order-upload-quotation'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/approve/', purchase_order_approve, name='purchase-order-approve'),
    path('purchase-orders/<int:pk>/reject/', purchase_order_reject, name='purchase-order-reject'),
]
