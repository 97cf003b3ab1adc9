from django.db import models
from common.models import UserActionModel
from common.exceptions import TransitionError
from common.utils import actor_name
from profiles.models import Patient, Doctor
import uuid

class Appointment(UserActionModel):
    """
    Appointment model
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('completed', 'Completed'),
        ('canceled', 'Canceled'),
    ]

    # Allowed status changes; statuses without an entry are terminal
    TRANSITIONS = {
        'pending': ['accepted', 'rejected'],
        'accepted': ['completed', 'canceled'],
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    appointment_date = models.DateField()
    appointment_time = models.CharField(max_length=20)  # As booked, e.g. "10:30 AM"
    reason = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    class Meta:
        db_table = 'appointment'
        indexes = [
            models.Index(fields=['doctor', 'status']),
            models.Index(fields=['doctor', 'appointment_date']),
        ]

    def __str__(self):
        return f"{self.patient.user.name} with {self.doctor.user.name} on {self.appointment_date}"

    @property
    def is_terminal(self):
        return self.status not in self.TRANSITIONS

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, [])

    def transition_to(self, new_status, user=None):
        """
        Move to new_status or raise TransitionError
        """
        if not self.can_transition_to(new_status):
            raise TransitionError('Appointment', self.status, new_status)

        self.status = new_status
        self.updated_by = actor_name(user)
        self.save(update_fields=['status', 'updated_by', 'updated_at'])
