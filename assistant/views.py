import logging

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import gemini
from .models import ChatMessage
from .serializers import DigitizeSerializer, ChatRequestSerializer, ChatMessageSerializer
from common.permissions import IsDoctorUser, IsPharmacyUser

logger = logging.getLogger(__name__)

INITIAL_MESSAGE = {
    'role': 'ai',
    'content': "Ready for clinical support. \n\nSelect an action or describe the patient case.",
    'hasAttachment': False,
}

class DigitizeView(APIView):
    """
    Read a paper prescription into editable medicine rows
    """
    permission_classes = [IsPharmacyUser]

    def post(self, request):
        serializer = DigitizeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            medicines = gemini.extract_medicines(serializer.validated_data['file'])
        except gemini.ExtractionError as e:
            logger.info("Digitisation for %s failed: %s", request.user.identity_uid, e)
            return Response({'message': 'Could not read the prescription. Please enter the medicines manually.'},
                            status=status.HTTP_502_BAD_GATEWAY)

        return Response(medicines, status=status.HTTP_200_OK)

class ChatView(APIView):
    """
    Send a message (and optional file) to the clinical assistant
    """
    permission_classes = [IsDoctorUser]

    def post(self, request):
        serializer = ChatRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = serializer.validated_data['message'].strip()
        attachment = serializer.validated_data.get('file')

        history = list(
            ChatMessage.objects.filter(user=request.user).order_by('-created_at', '-id')[:settings.CHAT_HISTORY_CONTEXT]
        )[::-1]

        ChatMessage.objects.create(
            user=request.user, role='user', content=message, has_attachment=attachment is not None
        )

        try:
            reply = gemini.generate_reply(history, message, attachment)
        except gemini.AssistantUnavailable:
            return Response({'message': 'CDSS unreachable'}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        ChatMessage.objects.create(user=request.user, role='ai', content=reply)
        return Response({'reply': reply}, status=status.HTTP_200_OK)

class ChatHistoryView(APIView):
    """
    Stored conversation with the clinical assistant; DELETE starts over
    """
    permission_classes = [IsDoctorUser]

    def get(self, request):
        messages = ChatMessage.objects.filter(user=request.user)
        if not messages.exists():
            return Response([INITIAL_MESSAGE])
        return Response(ChatMessageSerializer(messages, many=True).data)

    def delete(self, request):
        deleted, _ = ChatMessage.objects.filter(user=request.user).delete()
        logger.info("Cleared %d chat messages for %s", deleted, request.user.identity_uid)
        return Response([INITIAL_MESSAGE], status=status.HTTP_200_OK)
