from django.db import models
from profiles.models import EndUser

class ChatMessage(models.Model):
    """
    One turn of a doctor's conversation with the clinical assistant
    """
    ROLE_CHOICES = [
        ('user', 'User'),
        ('ai', 'AI'),
    ]

    user = models.ForeignKey(EndUser, on_delete=models.CASCADE, related_name='chat_messages')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    content = models.TextField(blank=True)
    has_attachment = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'chat_message'
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.user} [{self.role}] {self.content[:40]}"
