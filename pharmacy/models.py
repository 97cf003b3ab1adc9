from django.db import models
from common.models import TimestampedModel, UserActionModel
from common.exceptions import TransitionError
from profiles.models import Patient, Doctor, Pharmacy
import uuid

class StockItem(UserActionModel):
    """
    Medicine held by a pharmacy
    """
    # Upper bound of a PositiveIntegerField column
    MAX_QUANTITY = 2147483647

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pharmacy = models.ForeignKey(Pharmacy, on_delete=models.CASCADE, related_name='stock_items')
    medicine_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    class Meta:
        db_table = 'stock_item'
        ordering = ['medicine_name']
        indexes = [
            models.Index(fields=['pharmacy', 'medicine_name']),
        ]

    def __str__(self):
        return f"{self.medicine_name} ({self.quantity})"

    def adjust(self, delta):
        """
        Apply a relative change, kept within 0..MAX_QUANTITY
        """
        self.quantity = min(self.MAX_QUANTITY, max(0, self.quantity + delta))
        return self.quantity

class Prescription(TimestampedModel):
    """
    Prescription model
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('ready_for_pickup', 'Ready for Pickup'),
        ('dispensed', 'Dispensed'),
    ]

    # Fulfilment moves strictly forward; dispensed is final
    TRANSITIONS = {
        'pending': ['ready_for_pickup'],
        'ready_for_pickup': ['dispensed'],
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appointment = models.OneToOneField('appointment.Appointment', on_delete=models.SET_NULL,
                                       null=True, blank=True, related_name='prescription')
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='prescriptions')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    pharmacy = models.ForeignKey(Pharmacy, on_delete=models.CASCADE, related_name='prescriptions')
    notes = models.TextField(blank=True)
    pharmacy_notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    class Meta:
        db_table = 'prescription'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.id} - {self.patient.user.name}"

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, [])

    def transition_to(self, new_status, pharmacy_notes=None):
        """
        Move to new_status or raise TransitionError
        """
        if not self.can_transition_to(new_status):
            raise TransitionError('Prescription', self.status, new_status)

        self.status = new_status
        if pharmacy_notes is not None:
            self.pharmacy_notes = pharmacy_notes
        self.save(update_fields=['status', 'pharmacy_notes', 'updated_at'])

class PrescriptionMedicine(models.Model):
    """
    One ordered line of a prescription
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    prescription = models.ForeignKey(Prescription, on_delete=models.CASCADE, related_name='medicines')
    position = models.PositiveIntegerField(default=0)
    name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=100)
    frequency = models.CharField(max_length=100, blank=True)
    duration = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'prescription_medicine'
        ordering = ['position']

    def __str__(self):
        return f"{self.prescription_id} - {self.name} ({self.quantity})"

class OfflineOrder(UserActionModel):
    """
    Walk-in sale committed from a digitised paper prescription
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pharmacy = models.ForeignKey(Pharmacy, on_delete=models.CASCADE, related_name='offline_orders')

    class Meta:
        db_table = 'offline_order'
        ordering = ['-created_at']

    def __str__(self):
        return f"Offline order {self.id} at {self.pharmacy.name}"

class OfflineOrderLine(models.Model):
    """
    Per-medicine verdict of an offline order
    """
    STATUS_SOLD = 'Sold'
    STATUS_OUT_OF_STOCK = 'Out of Stock'
    STATUS_NOT_FOUND = 'Not Found'

    STATUS_CHOICES = [
        (STATUS_SOLD, 'Sold'),
        (STATUS_OUT_OF_STOCK, 'Out of Stock'),
        (STATUS_NOT_FOUND, 'Not Found'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(OfflineOrder, on_delete=models.CASCADE, related_name='lines')
    stock_item = models.ForeignKey(StockItem, on_delete=models.SET_NULL, null=True, blank=True)
    position = models.PositiveIntegerField(default=0)
    name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=100, blank=True)
    frequency = models.CharField(max_length=100, blank=True)
    duration = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES)

    class Meta:
        db_table = 'offline_order_line'
        ordering = ['position']

    def __str__(self):
        return f"{self.name} x{self.quantity}: {self.status}"
