from django.urls import path
from .views import party_list_create, party_detail, party_active

urlpatterns = [
    path('parties/', party_list_create, name='party-list-create'),
    path('parties/active/', party_active, name='party-active'),
    path('parties/<int:pk>/', party_detail, name='party-detail'),
]
