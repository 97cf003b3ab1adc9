from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from django.utils import timezone
from common.cache import query_key, invalidate_queries
from .models import Appointment

@receiver(post_save, sender=Appointment)
@receiver(post_delete, sender=Appointment)
def invalidate_doctor_stats(sender, instance, **kwargs):
    """
    Drop the doctor's cached dashboard numbers when any appointment changes
    """
    invalidate_queries(query_key('doctor_stats', instance.doctor_id, timezone.localdate()))
