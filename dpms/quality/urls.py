from django.urls import path
from .views import (
    qc_pending, qc_list_create, qc_detail, qc_approve_item, qc_approve, qc_reject,
    qc_next_code, qc_upload_attachment, qc_delete_attachment,
)

urlpatterns = [
    path('quality-control/', qc_list_create, name='qc-list-create'),
    path('quality-control/pending/', qc_pending, name='qc-pending'),
    path('quality-control/next-code/', qc_next_code, name='qc-next-code'),
    path('quality-control/upload-attachment/', qc_upload_attachment, name='qc-upload-attachment'),
    path('quality-control/attachment/', qc_delete_attachment, name='qc-delete-attachment'),
    path('quality-control/<int:pk>/', qc_detail, name='qc-detail'),
    path('quality-control/<int:pk>/approve-item/', qc_approve_item, name='qc-approve-item'),
    path('quality-control/<int:pk>/approve/', qc_approve, name='qc-approve'),
    path('quality-control/<int:pk>/reject/', qc_reject, name='qc-reject'),
]
