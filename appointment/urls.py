from django.urls import path
from . import views

urlpatterns = [
    # Dashboard
    path('doctor/stats', views.DoctorStatsView.as_view(), name='doctor-stats'),
    
    # Appointments
    path('doctor/appointments', views.DoctorAppointmentListView.as_view(), name='doctor-appointment-list'),
    path('doctor/appointments/<uuid:pk>', views.UpdateAppointmentStatusView.as_view(), name='doctor-appointment-status'),
    
    # Patient history
    path('doctor/history', views.PatientHistoryView.as_view(), name='doctor-history'),
]
