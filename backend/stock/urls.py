from django.urls import path
from . import views

urlpatterns = [
    path('safes/', views.safe_list_create, name='safe-list-create'),
    path('safes/<int:pk>/', views.safe_detail, name='safe-detail'),
    path('olive-purchases/', views.purchase_list_create, name='purchase-list-create'),
    path('olive-purchases/<int:pk>/', views.purchase_detail, name='purchase-detail'),
    path('olive-purchases/<int:pk>/move/', views.purchase_move, name='purchase-move'),
    path('oil-sales/', views.sale_list_create, name='sale-list-create'),
    path('oil-sales/<int:pk>/', views.sale_detail, name='sale-detail'),
]
