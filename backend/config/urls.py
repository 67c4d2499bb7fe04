"""
URL configuration for the sales orders backend.

Every API app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Sales Orders Admin Panel"
admin.site.site_title = "Sales Orders Admin Portal"
admin.site.index_title = "Sales order management"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.orders.urls')),
    path('api/v1/', include('backend.reports.urls')),
]
