from rest_framework import serializers
from .models import EndUser, Patient, Doctor, Pharmacy, DEFAULT_PREFERENCES

class SessionProfileSerializer(serializers.ModelSerializer):
    """
    Profile returned to the client after a session sync
    """
    _id = serializers.UUIDField(source='id', read_only=True)
    specialization = serializers.SerializerMethodField()

    class Meta:
        model = EndUser
        fields = ['_id', 'name', 'email', 'role', 'specialization']

    def get_specialization(self, obj):
        if obj.role == 'doctor' and hasattr(obj, 'doctor'):
            return obj.doctor.specialization
        return None

class SyncSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    role = serializers.ChoiceField(choices=[choice[0] for choice in EndUser.ROLE_CHOICES], required=False)
    specialization = serializers.CharField(max_length=255, required=False, allow_blank=True)

class PreferencesSerializer(serializers.Serializer):
    sidebarCollapsed = serializers.BooleanField(required=False)
    theme = serializers.ChoiceField(choices=['light', 'dark', 'system'], required=False)

    def validate(self, attrs):
        unknown = set(self.initial_data) - set(DEFAULT_PREFERENCES)
        if unknown:
            raise serializers.ValidationError(f"Unknown preference: {', '.join(sorted(unknown))}.")
        return attrs

class BlankAsNullMixin:
    """
    Profile forms send '' for numbers the user left unset
    """
    def validate_empty_values(self, data):
        if isinstance(data, str) and not data.strip():
            data = None
        return super().validate_empty_values(data)

class OptionalFloatField(BlankAsNullMixin, serializers.FloatField):
    pass

class OptionalDecimalField(BlankAsNullMixin, serializers.DecimalField):
    pass

class LocationInputMixin(serializers.Serializer):
    """
    Accepts latitude/longitude and validates their ranges.
    A single coordinate is completed from the stored profile.
    """
    latitude = OptionalFloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = OptionalFloatField(required=False, allow_null=True, min_value=-180, max_value=180)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if 'latitude' not in attrs and 'longitude' not in attrs:
            return attrs

        latitude = attrs.get('latitude', getattr(self.instance, 'latitude', None))
        longitude = attrs.get('longitude', getattr(self.instance, 'longitude', None))
        if (latitude is None) != (longitude is None):
            raise serializers.ValidationError("Latitude and longitude must be provided together.")
        return attrs

class PharmacyBriefSerializer(serializers.ModelSerializer):
    _id = serializers.UUIDField(source='id', read_only=True)

    class Meta:
        model = Pharmacy
        fields = ['_id', 'name', 'address']

class PharmacyProfileSerializer(LocationInputMixin, serializers.ModelSerializer):
    _id = serializers.UUIDField(source='id', read_only=True)
    location = serializers.ReadOnlyField()
    ownerId = serializers.SerializerMethodField()

    class Meta:
        model = Pharmacy
        fields = ['_id', 'name', 'address', 'phone', 'latitude', 'longitude', 'location', 'ownerId',
                 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_ownerId(self, obj):
        return {'name': obj.owner.name, 'email': obj.owner.email}

class TimingSerializer(serializers.Serializer):
    day = serializers.CharField(max_length=20)
    time = serializers.CharField(max_length=50)

class ConsultationFeeSerializer(serializers.Serializer):
    # Blank fees leave the stored value unchanged
    firstVisit = OptionalDecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)
    followUp = OptionalDecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)

class DoctorProfileSerializer(LocationInputMixin, serializers.ModelSerializer):
    """
    Doctor profile editor: flattens the user's name next to the clinic details
    """
    _id = serializers.UUIDField(source='user_id', read_only=True)
    name = serializers.CharField(source='user.name', max_length=255, required=False)
    email = serializers.EmailField(source='user.email', read_only=True)
    profilePictureUrl = serializers.URLField(source='profile_picture_url', max_length=500,
                                             required=False, allow_blank=True)
    services = serializers.ListField(child=serializers.CharField(max_length=255), required=False)
    timings = TimingSerializer(many=True, required=False)
    consultationFee = ConsultationFeeSerializer(required=False)
    location = serializers.ReadOnlyField()
    linkedPharmacies = serializers.PrimaryKeyRelatedField(
        source='linked_pharmacies', many=True, required=False,
        queryset=Pharmacy.objects.filter(deleted_at__isnull=True)
    )

    class Meta:
        model = Doctor
        fields = ['_id', 'name', 'email', 'specialization', 'profilePictureUrl', 'phone', 'about',
                 'services', 'timings', 'consultationFee', 'latitude', 'longitude', 'location',
                 'linkedPharmacies']

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['consultationFee'] = {
            'firstVisit': float(instance.fee_first_visit),
            'followUp': float(instance.fee_follow_up),
        }
        data['linkedPharmacies'] = [str(pk) for pk in data['linkedPharmacies']]
        return data

    def update(self, instance, validated_data):
        user_data = validated_data.pop('user', {})
        fee_data = validated_data.pop('consultationFee', None)
        pharmacies = validated_data.pop('linked_pharmacies', None)

        if 'name' in user_data:
            instance.user.name = user_data['name']
            instance.user.save(update_fields=['name', 'updated_at'])

        if fee_data is not None:
            if fee_data.get('firstVisit') is not None:
                instance.fee_first_visit = fee_data['firstVisit']
            if fee_data.get('followUp') is not None:
                instance.fee_follow_up = fee_data['followUp']

        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if pharmacies is not None:
            instance.linked_pharmacies.set(pharmacies)

        return instance

class PatientBriefSerializer(serializers.ModelSerializer):
    _id = serializers.UUIDField(source='user_id', read_only=True)
    name = serializers.CharField(source='user.name', read_only=True)

    class Meta:
        model = Patient
        fields = ['_id', 'name']

class PatientDetailSerializer(serializers.ModelSerializer):
    _id = serializers.UUIDField(source='user_id', read_only=True)
    name = serializers.CharField(source='user.name', read_only=True)
    dateOfBirth = serializers.DateField(source='date_of_birth', read_only=True)

    class Meta:
        model = Patient
        fields = ['_id', 'name', 'gender', 'dateOfBirth', 'phone']
