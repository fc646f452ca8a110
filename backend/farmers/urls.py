from django.urls import path
from . import views

urlpatterns = [
    # Farmers
    path('farmers/', views.farmer_list_create, name='farmer-list-create'),
    path('farmers/<int:pk>/', views.farmer_detail, name='farmer-detail'),
    path('farmers/<int:pk>/boxes/', views.farmer_boxes, name='farmer-boxes'),

    # Boxes (fixed routes before the <pk> catch-all)
    path('boxes/', views.box_list, name='box-list'),
    path('boxes/available/', views.box_available, name='box-available'),
    path('boxes/reset/', views.box_reset, name='box-reset'),
    path('boxes/validate/', views.box_validate, name='box-validate'),
    path('boxes/next-chkara-id/', views.box_next_chkara_id, name='box-next-chkara-id'),
    path('boxes/<str:pk>/', views.box_detail, name='box-detail'),
]
