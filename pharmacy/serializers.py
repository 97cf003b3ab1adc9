from rest_framework import serializers
from .models import StockItem, Prescription, PrescriptionMedicine, OfflineOrderLine
from profiles.serializers import PatientDetailSerializer, PharmacyBriefSerializer
from common.utils import normalize_medicine_name

# ==================== STOCK ====================

class StockItemSerializer(serializers.ModelSerializer):
    _id = serializers.UUIDField(source='id', read_only=True)
    medicineName = serializers.CharField(source='medicine_name', max_length=255)
    quantity = serializers.IntegerField(min_value=0, max_value=StockItem.MAX_QUANTITY)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0,
                                     required=False, allow_null=True, coerce_to_string=False)

    class Meta:
        model = StockItem
        fields = ['_id', 'medicineName', 'quantity', 'price', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_medicineName(self, value):
        value = normalize_medicine_name(value)
        if not value:
            raise serializers.ValidationError("Medicine name is required.")
        if self.instance is not None:
            # A rename must not collide with another row of the same pharmacy
            taken = StockItem.objects.filter(
                pharmacy=self.instance.pharmacy, medicine_name__iexact=value, deleted_at__isnull=True
            ).exclude(pk=self.instance.pk)
            if taken.exists():
                raise serializers.ValidationError(f"{value} is already in stock.")
        return value

class StockBriefSerializer(serializers.ModelSerializer):
    """
    Stock line offered to doctors for autocompletion
    """
    _id = serializers.UUIDField(source='id', read_only=True)
    medicineName = serializers.CharField(source='medicine_name', read_only=True)

    class Meta:
        model = StockItem
        fields = ['_id', 'medicineName', 'quantity']

class StockAdjustSerializer(serializers.Serializer):
    delta = serializers.IntegerField(min_value=-StockItem.MAX_QUANTITY, max_value=StockItem.MAX_QUANTITY)

# ==================== PRESCRIPTIONS ====================

class MedicineLineSerializer(serializers.ModelSerializer):
    name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=100)
    frequency = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    duration = serializers.CharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1, max_value=StockItem.MAX_QUANTITY, required=False, default=1)

    class Meta:
        model = PrescriptionMedicine
        fields = ['name', 'dosage', 'frequency', 'duration', 'quantity']

    def validate_name(self, value):
        value = normalize_medicine_name(value)
        if not value:
            raise serializers.ValidationError("Medicine name is required.")
        return value

class CreatePrescriptionSerializer(serializers.Serializer):
    appointmentId = serializers.UUIDField()
    patientId = serializers.UUIDField()
    pharmacyId = serializers.UUIDField()
    medicines = MedicineLineSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

class PrescriptionDetailSerializer(serializers.ModelSerializer):
    """
    Prescription as shown to the prescribing doctor
    """
    _id = serializers.UUIDField(source='id', read_only=True)
    patient = PatientDetailSerializer(read_only=True)
    pharmacy = PharmacyBriefSerializer(read_only=True)
    doctor = serializers.SerializerMethodField()
    medicines = MedicineLineSerializer(many=True, read_only=True)
    appointmentId = serializers.UUIDField(source='appointment_id', read_only=True)
    pharmacyNotes = serializers.CharField(source='pharmacy_notes', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Prescription
        fields = ['_id', 'appointmentId', 'patient', 'doctor', 'pharmacy', 'medicines', 'notes',
                 'pharmacyNotes', 'status', 'createdAt']

    def get_doctor(self, obj):
        return {'name': obj.doctor.user.name, 'specialization': obj.doctor.specialization}

class PharmacyPrescriptionSerializer(serializers.ModelSerializer):
    """
    Incoming prescription as listed for the pharmacy
    """
    _id = serializers.UUIDField(source='id', read_only=True)
    patientId = serializers.SerializerMethodField()
    doctorId = serializers.SerializerMethodField()
    medicines = MedicineLineSerializer(many=True, read_only=True)
    pharmacyNotes = serializers.CharField(source='pharmacy_notes', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Prescription
        fields = ['_id', 'patientId', 'doctorId', 'medicines', 'notes', 'status', 'pharmacyNotes',
                 'createdAt']

    def get_patientId(self, obj):
        return {'name': obj.patient.user.name}

    def get_doctorId(self, obj):
        return {'name': obj.doctor.user.name, 'specialization': obj.doctor.specialization}

class UpdatePrescriptionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['ready_for_pickup', 'dispensed'])
    pharmacyNotes = serializers.CharField(required=False, allow_blank=True)

# ==================== OFFLINE ORDERS ====================

class OfflineMedicineSerializer(serializers.Serializer):
    """
    One reviewed row of a digitised prescription
    """
    name = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    dosage = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    frequency = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    duration = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    quantity = serializers.IntegerField(required=False, allow_null=True, default=1, max_value=StockItem.MAX_QUANTITY)

    def to_internal_value(self, data):
        attrs = super().to_internal_value(data)
        for field in ('name', 'dosage', 'frequency', 'duration'):
            attrs[field] = (attrs.get(field) or '').strip()
        attrs['name'] = normalize_medicine_name(attrs['name'])
        # Long OCR text is cut to what an order line can store
        for field in ('name', 'dosage', 'frequency', 'duration'):
            max_length = OfflineOrderLine._meta.get_field(field).max_length
            attrs[field] = attrs[field][:max_length].rstrip()
        return attrs

class ProcessOfflineOrderSerializer(serializers.Serializer):
    medicines = OfflineMedicineSerializer(many=True)

    def validate_medicines(self, value):
        # Blank rows left over from review are dropped
        rows = [row for row in value if row['name']]
        if not rows:
            raise serializers.ValidationError("At least one medicine with a name is required.")
        for row in rows:
            if row['quantity'] is None or row['quantity'] < 1:
                raise serializers.ValidationError(f"Quantity for {row['name']} must be at least 1.")
        return rows

class OfflineOrderLineSerializer(serializers.Serializer):
    name = serializers.CharField()
    quantity = serializers.IntegerField()
    status = serializers.CharField()
    remainingStock = serializers.IntegerField(source='remaining_stock', allow_null=True)
