from django.urls import path
from . import views

urlpatterns = [
    path('sessions/', views.session_list_create, name='session-list-create'),
    path('sessions/summary/', views.session_summary, name='session-summary'),
    path('sessions/bulk-payment/', views.session_bulk_payment, name='session-bulk-payment'),
    path('sessions/<int:pk>/', views.session_detail, name='session-detail'),
    path('sessions/<int:pk>/complete/', views.session_complete, name='session-complete'),
    path('sessions/<int:pk>/payment/', views.session_payment, name='session-payment'),
    path('sessions/<int:pk>/reset/', views.session_reset, name='session-reset'),
    path('sessions/<int:pk>/unpay/', views.session_unpay, name='session-unpay'),
]
