from django.urls import path
from . import views

urlpatterns = [
    path('ai/digitize', views.DigitizeView.as_view(), name='ai-digitize'),
    path('ai/chat', views.ChatView.as_view(), name='ai-chat'),
    path('ai/chat/history', views.ChatHistoryView.as_view(), name='ai-chat-history'),
]
