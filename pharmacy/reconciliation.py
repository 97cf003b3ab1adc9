import logging

from django.db import transaction

from .models import StockItem, OfflineOrder, OfflineOrderLine
from common.utils import actor_name, normalize_medicine_name

logger = logging.getLogger(__name__)


def summarize(lines):
    """
    Count verdicts of a committed order
    """
    return {
        'sold': sum(1 for line in lines if line.status == OfflineOrderLine.STATUS_SOLD),
        'outOfStock': sum(1 for line in lines if line.status == OfflineOrderLine.STATUS_OUT_OF_STOCK),
        'notFound': sum(1 for line in lines if line.status == OfflineOrderLine.STATUS_NOT_FOUND),
    }


def reconcile_offline_order(pharmacy, medicines, user=None):
    """
    Decrement the pharmacy's stock for a reviewed list of medicines.

    Each entry is matched case-insensitively by name. A line is sold only
    when the whole quantity is on hand; short lines are reported as out of
    stock and leave the stock untouched. Returns the recorded OfflineOrder
    and its lines, each line carrying the remaining quantity as
    ``remaining_stock``.
    """
    actor = actor_name(user)
    lines = []

    with transaction.atomic():
        order = OfflineOrder.objects.create(pharmacy=pharmacy, created_by=actor, updated_by=actor)

        for position, medicine in enumerate(medicines):
            name = normalize_medicine_name(medicine['name'])
            quantity = medicine['quantity']

            item = (
                StockItem.objects
                .select_for_update()
                .filter(pharmacy=pharmacy, medicine_name__iexact=name, deleted_at__isnull=True)
                .order_by('created_at')
                .first()
            )

            if item is None:
                verdict = OfflineOrderLine.STATUS_NOT_FOUND
            elif item.quantity >= quantity:
                item.quantity -= quantity
                item.updated_by = actor
                item.save(update_fields=['quantity', 'updated_by', 'updated_at'])
                verdict = OfflineOrderLine.STATUS_SOLD
            else:
                verdict = OfflineOrderLine.STATUS_OUT_OF_STOCK

            line = OfflineOrderLine.objects.create(
                order=order,
                stock_item=item,
                position=position,
                name=name,
                dosage=medicine.get('dosage', ''),
                frequency=medicine.get('frequency', ''),
                duration=medicine.get('duration', ''),
                quantity=quantity,
                status=verdict,
            )
            line.remaining_stock = item.quantity if item is not None else None
            lines.append(line)

    summary = summarize(lines)
    logger.info(
        "Offline order %s at pharmacy %s: %d sold, %d out of stock, %d not found",
        order.id, pharmacy.id, summary['sold'], summary['outOfStock'], summary['notFound']
    )
    return order, lines
