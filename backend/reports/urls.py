from django.urls import path
from . import exports, views

urlpatterns = [
    path('dashboard/', views.dashboard, name='dashboard'),
    path('dashboard/stats/', views.dashboard_stats, name='dashboard-stats'),
    path('dashboard/real-time/', views.dashboard_real_time, name='dashboard-real-time'),
    path('export/excel/', exports.export_farmers, name='export-farmers'),
    path('export/excel-collectors/', exports.export_collectors, name='export-collectors'),
    path('export/excel-employees/', exports.export_employees, name='export-employees'),
    path('export/excel-purchases/', exports.export_purchases, name='export-purchases'),
]
