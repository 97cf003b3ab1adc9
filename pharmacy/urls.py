from django.urls import path
from . import views

urlpatterns = [
    # Dashboard
    path('pharmacy/stats', views.PharmacyStatsView.as_view(), name='pharmacy-stats'),

    # Stock
    path('pharmacy/stock', views.StockListView.as_view(), name='pharmacy-stock-list'),
    path('pharmacy/stock/<uuid:pk>', views.StockDetailView.as_view(), name='pharmacy-stock-detail'),
    path('pharmacy/stock/<uuid:pk>/adjust', views.StockAdjustView.as_view(), name='pharmacy-stock-adjust'),

    # Incoming prescriptions
    path('pharmacy/prescriptions', views.PharmacyPrescriptionListView.as_view(), name='pharmacy-prescription-list'),
    path('pharmacy/prescriptions/<uuid:pk>', views.PharmacyPrescriptionStatusView.as_view(), name='pharmacy-prescription-status'),

    # Walk-in sales
    path('pharmacy/process-offline-order', views.ProcessOfflineOrderView.as_view(), name='pharmacy-process-offline-order'),

    # Doctor prescription views
    path('doctor/prescriptions', views.DoctorPrescriptionCreateView.as_view(), name='doctor-prescription-create'),
    path('doctor/prescriptions/<uuid:pk>', views.DoctorPrescriptionDetailView.as_view(), name='doctor-prescription-detail'),
    path('doctor/prescriptions/<uuid:pk>/download', views.DoctorPrescriptionDownloadView.as_view(), name='doctor-prescription-download'),
    path('doctor/pharmacy/<uuid:pharmacy_id>/stock', views.LinkedPharmacyStockView.as_view(), name='doctor-pharmacy-stock'),
]
