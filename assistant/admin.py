from django.contrib import admin
from .models import ChatMessage

@admin.register(ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'has_attachment', 'created_at']
    list_filter = ['role', 'created_at']
    search_fields = ['user__name', 'user__email', 'content']
    readonly_fields = ['created_at']
