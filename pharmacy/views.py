import logging

from django.db import transaction
from django.http import HttpResponse
from django.template.loader import render_to_string
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import StockItem, Prescription, PrescriptionMedicine
from .reconciliation import reconcile_offline_order, summarize
from .serializers import (
    StockItemSerializer, StockBriefSerializer, StockAdjustSerializer,
    CreatePrescriptionSerializer, PrescriptionDetailSerializer, PharmacyPrescriptionSerializer,
    UpdatePrescriptionStatusSerializer, ProcessOfflineOrderSerializer, OfflineOrderLineSerializer
)
from appointment.models import Appointment
from profiles.models import Pharmacy
from profiles.views import get_own_pharmacy
from common.cache import query_key, cached_query
from common.exceptions import TransitionError
from common.permissions import IsDoctorUser, IsPharmacyUser
from common.utils import actor_name, calculate_age, soft_delete_object

logger = logging.getLogger(__name__)

# ==================== PHARMACY DASHBOARD ====================

class PharmacyStatsView(APIView):
    """
    Dashboard numbers for the signed-in pharmacy
    """
    permission_classes = [IsPharmacyUser]

    def get(self, request):
        pharmacy = get_own_pharmacy(request.user)

        def compute():
            stock = StockItem.objects.filter(pharmacy=pharmacy, deleted_at__isnull=True)
            return {
                'totalMedicines': stock.count(),
                'pendingPrescriptions': Prescription.objects.filter(
                    pharmacy=pharmacy, status='pending', deleted_at__isnull=True
                ).count(),
                'outOfStock': stock.filter(quantity=0).count(),
            }

        stats = cached_query(query_key('pharmacy_stats', pharmacy.pk), compute)
        return Response(stats, status=status.HTTP_200_OK)

# ==================== STOCK VIEWS ====================

class StockListView(APIView):
    """
    List the pharmacy's stock or add a medicine to it.
    Adding a name that is already stocked tops up the existing row.
    """
    permission_classes = [IsPharmacyUser]

    def get(self, request):
        pharmacy = get_own_pharmacy(request.user)

        def compute():
            queryset = StockItem.objects.filter(pharmacy=pharmacy, deleted_at__isnull=True).order_by('medicine_name')
            return StockItemSerializer(queryset, many=True).data

        return Response(cached_query(query_key('pharmacy_stock', pharmacy.pk), compute))

    def post(self, request):
        pharmacy = get_own_pharmacy(request.user)
        serializer = StockItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        actor = actor_name(request.user)

        with transaction.atomic():
            existing = (
                StockItem.objects
                .select_for_update()
                .filter(pharmacy=pharmacy, medicine_name__iexact=data['medicine_name'], deleted_at__isnull=True)
                .first()
            )

            if existing is not None:
                existing.adjust(data['quantity'])
                if data.get('price') is not None:
                    existing.price = data['price']
                existing.updated_by = actor
                existing.save()
                return Response(StockItemSerializer(existing).data, status=status.HTTP_200_OK)

            item = serializer.save(pharmacy=pharmacy, created_by=actor, updated_by=actor)

        logger.info("Stock item %s added to pharmacy %s", item.medicine_name, pharmacy.id)
        return Response(StockItemSerializer(item).data, status=status.HTTP_201_CREATED)

class StockDetailView(APIView):
    """
    Set the quantity/price/name of a stock item, or remove it
    """
    permission_classes = [IsPharmacyUser]

    def get_object(self, request, pk):
        pharmacy = get_own_pharmacy(request.user)
        try:
            return StockItem.objects.get(pk=pk, pharmacy=pharmacy, deleted_at__isnull=True)
        except StockItem.DoesNotExist:
            return None

    def put(self, request, pk):
        item = self.get_object(request, pk)
        if item is None:
            return Response({'message': 'Stock item not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = StockItemSerializer(item, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        item = serializer.save(updated_by=actor_name(request.user))

        return Response(StockItemSerializer(item).data, status=status.HTTP_200_OK)

    def delete(self, request, pk):
        item = self.get_object(request, pk)
        if item is None:
            return Response({'message': 'Stock item not found'}, status=status.HTTP_404_NOT_FOUND)

        soft_delete_object(item, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

class StockAdjustView(APIView):
    """
    Apply a relative change to a stock item's quantity, clamped at zero
    """
    permission_classes = [IsPharmacyUser]

    def post(self, request, pk):
        pharmacy = get_own_pharmacy(request.user)
        serializer = StockAdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            try:
                item = StockItem.objects.select_for_update().get(
                    pk=pk, pharmacy=pharmacy, deleted_at__isnull=True
                )
            except StockItem.DoesNotExist:
                return Response({'message': 'Stock item not found'}, status=status.HTTP_404_NOT_FOUND)

            item.adjust(serializer.validated_data['delta'])
            item.updated_by = actor_name(request.user)
            item.save(update_fields=['quantity', 'updated_by', 'updated_at'])

        return Response(StockItemSerializer(item).data, status=status.HTTP_200_OK)

# ==================== PHARMACY PRESCRIPTION VIEWS ====================

class PharmacyPrescriptionListView(generics.ListAPIView):
    """
    Prescriptions routed to the signed-in pharmacy, newest first
    """
    serializer_class = PharmacyPrescriptionSerializer
    permission_classes = [IsPharmacyUser]
    filterset_fields = ['status']

    def get_queryset(self):
        pharmacy = get_own_pharmacy(self.request.user)
        return (
            Prescription.objects
            .filter(pharmacy=pharmacy, deleted_at__isnull=True)
            .select_related('patient__user', 'doctor__user')
            .prefetch_related('medicines')
            .order_by('-created_at')
        )

class PharmacyPrescriptionStatusView(APIView):
    """
    Move an incoming prescription to ready for pickup, then dispensed
    """
    permission_classes = [IsPharmacyUser]

    def put(self, request, pk):
        pharmacy = get_own_pharmacy(request.user)
        try:
            prescription = Prescription.objects.get(pk=pk, pharmacy=pharmacy, deleted_at__isnull=True)
        except Prescription.DoesNotExist:
            return Response({'message': 'Prescription not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = UpdatePrescriptionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            prescription.transition_to(data['status'], data.get('pharmacyNotes'))
        except TransitionError as e:
            return Response({'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info("Prescription %s moved to %s by pharmacy %s", prescription.id, prescription.status, pharmacy.id)

        return Response({
            'message': 'Prescription status updated.',
            'prescription': PharmacyPrescriptionSerializer(prescription).data
        }, status=status.HTTP_200_OK)

# ==================== OFFLINE ORDERS ====================

class ProcessOfflineOrderView(APIView):
    """
    Commit a reviewed, digitised paper prescription as a walk-in sale
    """
    permission_classes = [IsPharmacyUser]

    def post(self, request):
        pharmacy = get_own_pharmacy(request.user)
        serializer = ProcessOfflineOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order, lines = reconcile_offline_order(pharmacy, serializer.validated_data['medicines'], request.user)
        summary = summarize(lines)

        unsold = summary['outOfStock'] + summary['notFound']
        if unsold == 0:
            message = f"Sale complete. {summary['sold']} items deducted from stock."
        else:
            message = f"Partial success. Sold {summary['sold']} items; {unsold} items not found or out of stock."

        return Response({
            'message': message,
            'orderId': str(order.id),
            'details': OfflineOrderLineSerializer(lines, many=True).data,
            'summary': summary,
        }, status=status.HTTP_200_OK)

# ==================== DOCTOR PRESCRIPTION VIEWS ====================

class DoctorPrescriptionCreateView(APIView):
    """
    Write a prescription for an accepted appointment and route it to one
    of the doctor's linked pharmacies. Completes the appointment.
    """
    permission_classes = [IsDoctorUser]

    def post(self, request):
        doctor = request.user.doctor
        serializer = CreatePrescriptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            appointment = Appointment.objects.get(
                pk=data['appointmentId'], doctor=doctor, deleted_at__isnull=True
            )
        except Appointment.DoesNotExist:
            return Response({'message': 'Appointment not found'}, status=status.HTTP_404_NOT_FOUND)

        if appointment.status != 'accepted':
            return Response({'message': 'Prescriptions can only be written for accepted appointments.'},
                            status=status.HTTP_400_BAD_REQUEST)

        if appointment.patient_id != data['patientId']:
            return Response({'message': 'Patient does not match the appointment.'},
                            status=status.HTTP_400_BAD_REQUEST)

        try:
            pharmacy = doctor.linked_pharmacies.get(pk=data['pharmacyId'], deleted_at__isnull=True)
        except Pharmacy.DoesNotExist:
            return Response({'message': 'Pharmacy is not linked to your profile.'},
                            status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            prescription = Prescription.objects.create(
                appointment=appointment,
                doctor=doctor,
                patient=appointment.patient,
                pharmacy=pharmacy,
                notes=data['notes'],
            )
            PrescriptionMedicine.objects.bulk_create([
                PrescriptionMedicine(prescription=prescription, position=position, **medicine)
                for position, medicine in enumerate(data['medicines'])
            ])
            appointment.transition_to('completed', request.user)

        logger.info("Prescription %s written by doctor %s for pharmacy %s", prescription.id, doctor.pk, pharmacy.id)

        return Response({
            'message': 'Prescription created.',
            'prescription': PrescriptionDetailSerializer(prescription).data
        }, status=status.HTTP_201_CREATED)

def get_doctor_prescription(doctor, pk):
    """
    A prescription written by the doctor, or None
    """
    try:
        return (
            Prescription.objects
            .select_related('patient__user', 'doctor__user', 'pharmacy')
            .prefetch_related('medicines')
            .get(pk=pk, doctor=doctor, deleted_at__isnull=True)
        )
    except Prescription.DoesNotExist:
        return None

class DoctorPrescriptionDetailView(APIView):
    """
    Get a prescription written by the signed-in doctor
    """
    permission_classes = [IsDoctorUser]

    def get(self, request, pk):
        prescription = get_doctor_prescription(request.user.doctor, pk)
        if prescription is None:
            return Response({'message': 'Prescription not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(PrescriptionDetailSerializer(prescription).data)

class DoctorPrescriptionDownloadView(APIView):
    """
    Printable copy of a prescription
    """
    permission_classes = [IsDoctorUser]

    def get(self, request, pk):
        prescription = get_doctor_prescription(request.user.doctor, pk)
        if prescription is None:
            return Response({'message': 'Prescription not found'}, status=status.HTTP_404_NOT_FOUND)

        patient = prescription.patient
        html = render_to_string('pharmacy/prescription_print.html', {
            'prescription': prescription,
            'doctor': prescription.doctor,
            'patient': patient,
            'patient_age': calculate_age(patient.date_of_birth) if patient.date_of_birth else None,
            'pharmacy': prescription.pharmacy,
            'medicines': prescription.medicines.all(),
            'printed_at': timezone.localtime(),
        })

        response = HttpResponse(html, content_type='text/html; charset=utf-8')
        response['Content-Disposition'] = f'attachment; filename="prescription-{prescription.id}.html"'
        return response

class LinkedPharmacyStockView(generics.ListAPIView):
    """
    Stock of one of the doctor's linked pharmacies, for autocompletion
    """
    serializer_class = StockBriefSerializer
    permission_classes = [IsDoctorUser]

    def list(self, request, *args, **kwargs):
        pharmacy_id = kwargs['pharmacy_id']
        if not request.user.doctor.linked_pharmacies.filter(pk=pharmacy_id, deleted_at__isnull=True).exists():
            return Response({'message': 'Pharmacy is not linked to your profile.'},
                            status=status.HTTP_403_FORBIDDEN)
        return super().list(request, *args, **kwargs)

    def get_queryset(self):
        return StockItem.objects.filter(
            pharmacy_id=self.kwargs['pharmacy_id'], deleted_at__isnull=True
        ).order_by('medicine_name')
