from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from common.models import TimestampedModel, LocatedModel
import uuid

DEFAULT_PREFERENCES = {
    'sidebarCollapsed': False,
    'theme': 'system',
}

class EndUserManager(UserManager):
    """
    Users are keyed by the identity provider's uid
    """
    def create_user(self, identity_uid, email=None, password=None, **extra_fields):
        extra_fields.setdefault('username', identity_uid)
        return super().create_user(identity_uid=identity_uid, email=email, password=password, **extra_fields)

    def create_superuser(self, identity_uid, email=None, password=None, **extra_fields):
        extra_fields.setdefault('username', identity_uid)
        return super().create_superuser(identity_uid=identity_uid, email=email, password=password, **extra_fields)

class EndUser(AbstractUser):
    """
    Custom user model mirroring an identity-provider account
    """
    ROLE_CHOICES = [
        ('doctor', 'Doctor'),
        ('pharmacy', 'Pharmacy'),
        ('patient', 'Patient'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    identity_uid = models.CharField(max_length=128, unique=True)
    name = models.CharField(max_length=255, blank=True)
    username = models.CharField(max_length=150, unique=True)
    email = models.EmailField(blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='patient')
    preferences = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    USERNAME_FIELD = 'identity_uid'
    REQUIRED_FIELDS = ['username', 'email']

    objects = EndUserManager()

    class Meta:
        db_table = 'end_user'

    def __str__(self):
        return f"{self.name} ({self.email or self.identity_uid})"

    @property
    def is_doctor(self):
        return self.role == 'doctor'

    @property
    def is_pharmacy(self):
        return self.role == 'pharmacy'

    def get_preferences(self):
        return {**DEFAULT_PREFERENCES, **(self.preferences or {})}

class Patient(models.Model):
    """
    Patient profile
    """
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    user = models.OneToOneField(EndUser, on_delete=models.CASCADE, primary_key=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    phone = models.CharField(max_length=20, blank=True)

    class Meta:
        db_table = 'patient'

    def __str__(self):
        return f"Patient: {self.user.name}"

class Pharmacy(TimestampedModel, LocatedModel):
    """
    Pharmacy profile, created by the owner after registration
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.OneToOneField(EndUser, on_delete=models.CASCADE, related_name='pharmacy')
    name = models.CharField(max_length=255)
    address = models.TextField()
    phone = models.CharField(max_length=20)

    class Meta:
        db_table = 'pharmacy'
        verbose_name_plural = 'pharmacies'

    def __str__(self):
        return self.name

class Doctor(LocatedModel):
    """
    Doctor profile
    """
    user = models.OneToOneField(EndUser, on_delete=models.CASCADE, primary_key=True)
    specialization = models.CharField(max_length=255, blank=True)
    profile_picture_url = models.URLField(max_length=500, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    about = models.TextField(blank=True)
    services = models.JSONField(default=list, blank=True)  # List of service names
    timings = models.JSONField(default=list, blank=True)  # List of {"day", "time"}
    fee_first_visit = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    fee_follow_up = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    linked_pharmacies = models.ManyToManyField(Pharmacy, related_name='linked_doctors', blank=True)

    class Meta:
        db_table = 'doctor'

    def __str__(self):
        return f"Dr. {self.user.name} ({self.specialization or 'General'})"
