"""
e-doğrula URL configuration.
Uploads are served from MEDIA_ROOT under /uploads/ by Django itself in DEBUG;
production should let the web server serve that directory.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('directory.urls')),
]

if settings.DEBUG and settings.MEDIA_URL:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

handler400 = 'directory.views.error_views.custom_bad_request'
handler404 = 'directory.views.error_views.custom_page_not_found'
handler500 = 'directory.views.error_views.custom_server_error'
