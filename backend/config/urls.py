"""
URL configuration for the Huilerie backend.

Every app exposes its routes under the versioned ``api/v1/`` prefix.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Huilerie Admin Panel"
admin.site.site_title = "Huilerie Admin Portal"
admin.site.index_title = "Gestion de l'huilerie"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.farmers.urls')),
    path('api/v1/', include('backend.processing.urls')),
    path('api/v1/', include('backend.finance.urls')),
    path('api/v1/', include('backend.collectors.urls')),
    path('api/v1/', include('backend.employees.urls')),
    path('api/v1/', include('backend.stock.urls')),
    path('api/v1/', include('backend.reports.urls')),
]
