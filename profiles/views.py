import logging

from django.db import transaction
from rest_framework import generics, status, permissions
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import EndUser, Doctor, Pharmacy
from .serializers import (
    SessionProfileSerializer, SyncSerializer, PreferencesSerializer,
    PharmacyBriefSerializer, PharmacyProfileSerializer, DoctorProfileSerializer
)
from common.permissions import HasIdentityToken, IsDoctorUser, IsPharmacyUser
from common.utils import get_identity_uid

logger = logging.getLogger(__name__)

# ==================== SESSION VIEWS ====================

class SyncSessionView(APIView):
    """
    Mirror the identity-provider session into a backend user.
    Creates the user on first sign-in (registration); afterwards only
    refreshes the display name and returns the profile.
    """
    authentication_classes = []
    permission_classes = [HasIdentityToken]

    def post(self, request):
        serializer = SyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        claims = request.identity_claims
        name = (data.get('name') or '').strip()
        user = request.identity_user

        if user is not None:
            if name and name != user.name:
                user.name = name
                user.save(update_fields=['name', 'updated_at'])
            return Response(SessionProfileSerializer(user).data, status=status.HTTP_200_OK)

        uid = get_identity_uid(claims)
        role = data.get('role', 'patient')

        with transaction.atomic():
            user = EndUser.objects.create_user(
                identity_uid=uid,
                email=claims.get('email'),
                name=name or claims.get('name') or '',
                role=role,
            )
            if role == 'doctor':
                # Profile row is created by the post_save signal
                user.doctor.specialization = data.get('specialization', '')
                user.doctor.save(update_fields=['specialization'])

        logger.info("Registered %s account %s", role, uid)
        return Response(SessionProfileSerializer(user).data, status=status.HTTP_201_CREATED)

class CurrentUserView(APIView):
    """
    Profile of the signed-in user
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(SessionProfileSerializer(request.user).data)

class PreferencesView(APIView):
    """
    Per-user UI preferences (sidebar collapse, theme)
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(request.user.get_preferences())

    def put(self, request):
        serializer = PreferencesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = request.user
        user.preferences = {**(user.preferences or {}), **serializer.validated_data}
        user.save(update_fields=['preferences', 'updated_at'])

        return Response(user.get_preferences())

# ==================== DOCTOR PROFILE VIEWS ====================

class DoctorProfileView(generics.RetrieveUpdateAPIView):
    """
    Get or update the signed-in doctor's profile
    """
    serializer_class = DoctorProfileSerializer
    permission_classes = [IsDoctorUser]

    def get_object(self):
        doctor, _ = Doctor.objects.get_or_create(user=self.request.user)
        return doctor

    def update(self, request, *args, **kwargs):
        # The editor always submits the whole form; treat it as a partial update
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

# ==================== PHARMACY PROFILE VIEWS ====================

def get_own_pharmacy(user):
    """
    The requesting user's pharmacy profile or 404
    """
    try:
        return Pharmacy.objects.get(owner=user, deleted_at__isnull=True)
    except Pharmacy.DoesNotExist:
        raise NotFound("Pharmacy profile not found. Please create your pharmacy profile first.")

class PharmacyProfileStatusView(APIView):
    """
    Whether the signed-in pharmacy user has created a profile yet
    """
    permission_classes = [IsPharmacyUser]

    def get(self, request):
        has_profile = Pharmacy.objects.filter(owner=request.user, deleted_at__isnull=True).exists()
        return Response({'hasProfile': has_profile})

class PharmacyProfileView(APIView):
    """
    Create, get or update the signed-in user's pharmacy profile
    """
    permission_classes = [IsPharmacyUser]

    def get(self, request):
        pharmacy = get_own_pharmacy(request.user)
        return Response(PharmacyProfileSerializer(pharmacy).data)

    def post(self, request):
        if Pharmacy.objects.filter(owner=request.user, deleted_at__isnull=True).exists():
            return Response({'message': 'Pharmacy profile already exists'}, status=status.HTTP_409_CONFLICT)

        serializer = PharmacyProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pharmacy = serializer.save(owner=request.user)

        logger.info("Pharmacy profile %s created by %s", pharmacy.id, request.user.identity_uid)
        return Response(PharmacyProfileSerializer(pharmacy).data, status=status.HTTP_201_CREATED)

    def put(self, request):
        pharmacy = get_own_pharmacy(request.user)
        serializer = PharmacyProfileSerializer(pharmacy, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        pharmacy = serializer.save()
        return Response(PharmacyProfileSerializer(pharmacy).data)

class PharmacyListView(generics.ListAPIView):
    """
    All pharmacies, for the doctor's linked-pharmacy picker
    """
    serializer_class = PharmacyBriefSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return Pharmacy.objects.filter(deleted_at__isnull=True).order_by('name')
