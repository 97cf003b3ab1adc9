from rest_framework import serializers
from .models import Appointment
from profiles.serializers import PatientBriefSerializer
from common.utils import build_prescription_link

class AppointmentSerializer(serializers.ModelSerializer):
    _id = serializers.UUIDField(source='id', read_only=True)
    patientId = PatientBriefSerializer(source='patient', read_only=True)
    appointmentDate = serializers.DateField(source='appointment_date', read_only=True)
    appointmentTime = serializers.CharField(source='appointment_time', read_only=True)
    prescriptionLink = serializers.SerializerMethodField()
    
    class Meta:
        model = Appointment
        fields = ['_id', 'patientId', 'appointmentDate', 'appointmentTime', 'reason', 'status',
                 'prescriptionLink', 'created_at', 'updated_at']
        read_only_fields = fields
    
    def get_prescriptionLink(self, obj):
        # Only accepted appointments can be turned into a prescription
        if obj.status != 'accepted':
            return None
        return build_prescription_link(obj)

class UpdateAppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['accepted', 'rejected', 'completed', 'canceled'])

class HistoryItemSerializer(serializers.ModelSerializer):
    _id = serializers.UUIDField(source='id', read_only=True)
    appointmentDate = serializers.DateField(source='appointment_date', read_only=True)
    patientId = serializers.SerializerMethodField()
    prescriptionId = serializers.UUIDField(source='prescription.id', read_only=True)
    
    class Meta:
        model = Appointment
        fields = ['_id', 'appointmentDate', 'patientId', 'prescriptionId']
    
    def get_patientId(self, obj):
        return {'name': obj.patient.user.name}
