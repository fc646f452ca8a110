from django.urls import path
from . import views

urlpatterns = [
    path('collector-groups/', views.collector_group_list_create, name='collector-group-list-create'),
    path('collector-groups/<int:pk>/', views.collector_group_detail, name='collector-group-detail'),
    path('collector-groups/<int:pk>/summary/', views.collector_group_summary, name='collector-group-summary'),
    path('collections/', views.collection_list_create, name='collection-list-create'),
    path('collections/<int:pk>/', views.collection_detail, name='collection-detail'),
    path('collector-payments/', views.collector_payment_list_create, name='collector-payment-list-create'),
    path('collector-payments/<int:pk>/', views.collector_payment_detail, name='collector-payment-detail'),
]
