import logging

from django.db.models import Case, When, IntegerField
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Appointment
from .serializers import AppointmentSerializer, UpdateAppointmentStatusSerializer, HistoryItemSerializer
from common.cache import query_key, cached_query
from common.exceptions import TransitionError
from common.permissions import IsDoctorUser

logger = logging.getLogger(__name__)

class DoctorStatsView(APIView):
    """
    Dashboard numbers for the signed-in doctor
    """
    permission_classes = [IsDoctorUser]

    def get(self, request):
        doctor = request.user.doctor
        today = timezone.localdate()

        def compute():
            appointments = Appointment.objects.filter(doctor=doctor, deleted_at__isnull=True)
            return {
                'todaysAppointments': appointments.filter(appointment_date=today)
                                                  .exclude(status__in=['rejected', 'canceled']).count(),
                'pendingRequests': appointments.filter(status='pending').count(),
                'acceptedAppointments': appointments.filter(status='accepted').count(),
            }

        stats = cached_query(query_key('doctor_stats', doctor.pk, today), compute)
        return Response(stats, status=status.HTTP_200_OK)

class DoctorAppointmentListView(generics.ListAPIView):
    """
    The doctor's appointments, pending requests first, then newest first
    """
    serializer_class = AppointmentSerializer
    permission_classes = [IsDoctorUser]
    filterset_fields = ['status']

    def get_queryset(self):
        return (
            Appointment.objects
            .filter(doctor=self.request.user.doctor, deleted_at__isnull=True)
            .select_related('patient__user')
            .annotate(pending_rank=Case(
                When(status='pending', then=0), default=1, output_field=IntegerField()
            ))
            .order_by('pending_rank', '-appointment_date', '-created_at')
        )

class UpdateAppointmentStatusView(APIView):
    """
    Accept, reject, complete or cancel one of the doctor's appointments
    """
    permission_classes = [IsDoctorUser]

    def put(self, request, pk):
        try:
            appointment = Appointment.objects.select_related('patient__user').get(
                pk=pk, doctor=request.user.doctor, deleted_at__isnull=True
            )
        except Appointment.DoesNotExist:
            return Response({'message': 'Appointment not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = UpdateAppointmentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']

        try:
            appointment.transition_to(new_status, request.user)
        except TransitionError as e:
            return Response({'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info("Appointment %s moved to %s by doctor %s", appointment.id, new_status, request.user.pk)

        return Response({
            'message': f'Appointment {new_status}.',
            'appointment': AppointmentSerializer(appointment).data
        }, status=status.HTTP_200_OK)

class PatientHistoryView(generics.ListAPIView):
    """
    Completed appointments that produced a prescription
    """
    serializer_class = HistoryItemSerializer
    permission_classes = [IsDoctorUser]

    def get_queryset(self):
        return (
            Appointment.objects
            .filter(
                doctor=self.request.user.doctor,
                status='completed',
                prescription__isnull=False,
                deleted_at__isnull=True,
            )
            .select_related('patient__user', 'prescription')
            .order_by('-appointment_date', '-updated_at')
        )
