from django.urls import path
from . import views

urlpatterns = [
    path('transactions/', views.transaction_list_create, name='transaction-list-create'),
    path('transactions/<int:pk>/', views.transaction_detail, name='transaction-detail'),
]
