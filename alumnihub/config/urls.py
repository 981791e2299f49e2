"""
URL configuration for the alumnihub project.

Every app exposes its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "AlumniHub Admin Panel"
admin.site.site_title = "AlumniHub Admin Portal"
admin.site.index_title = "Welcome to AlumniHub Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('alumnihub.core.urls')),
    path('api/v1/', include('alumnihub.alumni.urls')),
    path('api/v1/', include('alumnihub.communities.urls')),
    path('api/v1/', include('alumnihub.events.urls')),
    path('api/v1/', include('alumnihub.donations.urls')),
    path('api/v1/', include('alumnihub.mentoring.urls')),
    path('api/v1/', include('alumnihub.reports.urls')),
]
