from django.urls import path
from . import views

urlpatterns = [
    # Session
    path('auth/sync', views.SyncSessionView.as_view(), name='auth-sync'),
    path('auth/me', views.CurrentUserView.as_view(), name='auth-me'),
    path('auth/preferences', views.PreferencesView.as_view(), name='auth-preferences'),
    
    # Doctor profile
    path('doctor/profile', views.DoctorProfileView.as_view(), name='doctor-profile'),
    
    # Pharmacy profile
    path('pharmacy/profile', views.PharmacyProfileView.as_view(), name='pharmacy-profile'),
    path('pharmacy/profile/status', views.PharmacyProfileStatusView.as_view(), name='pharmacy-profile-status'),
    path('pharmacy/all', views.PharmacyListView.as_view(), name='pharmacy-list'),
]
