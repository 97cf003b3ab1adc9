from django.db.models.signals import post_save
from django.dispatch import receiver
from .models import EndUser, Patient, Doctor

@receiver(post_save, sender=EndUser)
def create_user_profile(sender, instance, created, **kwargs):
    """
    Create corresponding profile when EndUser is created.
    Pharmacies create their profile explicitly after registration.
    """
    if created:
        if instance.role == 'doctor' and not hasattr(instance, 'doctor'):
            Doctor.objects.create(user=instance)
        elif instance.role == 'patient' and not hasattr(instance, 'patient'):
            Patient.objects.create(user=instance)
