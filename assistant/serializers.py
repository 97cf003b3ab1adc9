from django.conf import settings
from rest_framework import serializers
from .models import ChatMessage

ALLOWED_UPLOAD_TYPES = ['image/jpeg', 'image/png', 'application/pdf']

def validate_upload(upload):
    if upload.content_type not in ALLOWED_UPLOAD_TYPES:
        raise serializers.ValidationError("Only JPEG, PNG or PDF files are accepted.")
    if upload.size > settings.DIGITIZE_MAX_UPLOAD_BYTES:
        limit_mb = settings.DIGITIZE_MAX_UPLOAD_BYTES // (1024 * 1024)
        raise serializers.ValidationError(f"File is too large. The limit is {limit_mb} MB.")
    return upload

class DigitizeSerializer(serializers.Serializer):
    file = serializers.FileField(validators=[validate_upload])

class ChatRequestSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, default='')
    file = serializers.FileField(required=False, allow_null=True, validators=[validate_upload])

    def validate(self, attrs):
        if not attrs.get('message', '').strip() and not attrs.get('file'):
            raise serializers.ValidationError("Type a message or attach a file.")
        return attrs

class ChatMessageSerializer(serializers.ModelSerializer):
    hasAttachment = serializers.BooleanField(source='has_attachment', read_only=True)

    class Meta:
        model = ChatMessage
        fields = ['role', 'content', 'hasAttachment']
