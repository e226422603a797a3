from django.urls import path
from .views import (
    inward_list_create, inward_detail, inward_submit, inward_next_code, inward_upload_attachment,
    outward_list_create, outward_detail, outward_next_code,
    job_work_list_create, job_work_detail, job_work_status, job_work_pending, job_work_next_code,
)

urlpatterns = [
    # Inward
    path('inwards/', inward_list_create, name='inward-list-create'),
    path('inwards/next-code/', inward_next_code, name='inward-next-code'),
    path('inwards/upload-attachment/', inward_upload_attachment, name='inward-upload-attachment'),
    path('inwards/<int:pk>/', inward_detail, name='inward-detail'),
    path('inwards/<int:pk>/submit/', inward_submit, name='inward-submit'),

    # Outward
    path('outwards/', outward_list_create, name='outward-list-create'),
    path('outwards/next-code/', outward_next_code, name='outward-next-code'),
    path('outwards/<int:pk>/', outward_detail, name='outward-detail'),

    # Job work
    path('job-works/', job_work_list_create, name='job-work-list-create'),
    path('job-works/pending/', job_work_pending, name='job-work-pending'),
    path('job-works/next-code/', job_work_next_code, name='job-work-next-code'),
    path('job-works/<int:pk>/', job_work_detail, name='job-work-detail'),
    path('job-works/<int:pk>/status/', job_work_status, name='job-work-status'),
]
