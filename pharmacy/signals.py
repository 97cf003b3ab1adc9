from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from common.cache import query_key, invalidate_queries
from .models import StockItem, Prescription

@receiver(post_save, sender=StockItem)
@receiver(post_delete, sender=StockItem)
def invalidate_stock_queries(sender, instance, **kwargs):
    """
    Drop the pharmacy's cached stock list and dashboard numbers
    """
    invalidate_queries(
        query_key('pharmacy_stock', instance.pharmacy_id),
        query_key('pharmacy_stats', instance.pharmacy_id),
    )

@receiver(post_save, sender=Prescription)
@receiver(post_delete, sender=Prescription)
def invalidate_prescription_queries(sender, instance, **kwargs):
    invalidate_queries(query_key('pharmacy_stats', instance.pharmacy_id))
