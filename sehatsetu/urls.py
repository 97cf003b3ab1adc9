from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('profiles.urls')),
    path('api/', include('appointment.urls')),
    path('api/', include('pharmacy.urls')),
    path('api/', include('assistant.urls')),
]
