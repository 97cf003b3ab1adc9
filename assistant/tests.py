import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from assistant import gemini
from assistant.models import ChatMessage

pytestmark = pytest.mark.django_db

GREETING = "Ready for clinical support. \n\nSelect an action or describe the patient case."


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate_content(self, contents):
        self.calls.append(contents)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.reply)


@pytest.fixture
def fake_model(monkeypatch):
    model = FakeModel(reply='Consider viral pharyngitis.')
    monkeypatch.setattr(gemini, 'get_model', lambda system_instruction=None: model)
    return model


def png(name='rx.png', size=64):
    return SimpleUploadedFile(name, b'\x89PNG\r\n\x1a\n' + b'0' * size, content_type='image/png')


class TestParseMedicineList:
    def test_fenced_json(self):
        text = '```json\n[{"name": "Amoxicillin", "dosage": "500mg", "frequency": "TDS", ' \
               '"duration": "5 days", "quantity": "15 caps"}]\n```'

        assert gemini.parse_medicine_list(text) == [{
            'name': 'Amoxicillin', 'dosage': '500mg', 'frequency': 'TDS', 'duration': '5 days', 'quantity': 15,
        }]

    def test_missing_fields_and_bad_quantity(self):
        medicines = gemini.parse_medicine_list('[{"name": "ORS", "quantity": 0}, {"name": "Zinc"}]')

        assert medicines[0] == {'name': 'ORS', 'dosage': '', 'frequency': '', 'duration': '', 'quantity': 1}
        assert medicines[1]['quantity'] == 1

    @pytest.mark.parametrize('text', ['not json', '{"name": "ORS"}', '["ORS"]', ''])
    def test_malformed_reply(self, text):
        with pytest.raises(gemini.ExtractionError):
            gemini.parse_medicine_list(text)


class TestDigitize:
    def test_extracts_rows(self, pharmacy_client, fake_model):
        fake_model.reply = '[{"name": "Paracetamol 500mg", "dosage": "500mg", "frequency": "1-0-1", ' \
                           '"duration": "3 days", "quantity": 6}]'

        response = pharmacy_client.post('/api/ai/digitize', {'file': png()}, format='multipart')

        assert response.status_code == 200
        assert response.json() == [{
            'name': 'Paracetamol 500mg', 'dosage': '500mg', 'frequency': '1-0-1', 'duration': '3 days', 'quantity': 6,
        }]
        prompt, blob = fake_model.calls[0]
        assert blob['mime_type'] == 'image/png'

    def test_malformed_reply_asks_for_manual_entry(self, pharmacy_client, fake_model):
        fake_model.reply = 'I could not read this prescription.'

        response = pharmacy_client.post('/api/ai/digitize', {'file': png()}, format='multipart')

        assert response.status_code == 502
        assert 'manually' in response.json()['message']

    def test_provider_failure(self, pharmacy_client, fake_model):
        fake_model.error = RuntimeError('quota exceeded')

        response = pharmacy_client.post('/api/ai/digitize', {'file': png()}, format='multipart')

        assert response.status_code == 502

    def test_rejects_unsupported_type(self, pharmacy_client, fake_model):
        upload = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')

        response = pharmacy_client.post('/api/ai/digitize', {'file': upload}, format='multipart')

        assert response.status_code == 400
        assert fake_model.calls == []

    def test_rejects_large_file(self, pharmacy_client, fake_model, settings):
        settings.DIGITIZE_MAX_UPLOAD_BYTES = 16

        response = pharmacy_client.post('/api/ai/digitize', {'file': png()}, format='multipart')

        assert response.status_code == 400

    def test_pharmacy_only(self, doctor_client, fake_model):
        response = doctor_client.post('/api/ai/digitize', {'file': png()}, format='multipart')

        assert response.status_code == 403


class TestChat:
    def test_history_starts_with_greeting(self, doctor_client):
        response = doctor_client.get('/api/ai/chat/history')

        assert response.json() == [{'role': 'ai', 'content': GREETING, 'hasAttachment': False}]

    def test_chat_stores_both_turns(self, doctor_client, fake_model):
        response = doctor_client.post('/api/ai/chat', {'message': 'Sore throat, fever 2 days'}, format='multipart')

        assert response.status_code == 200
        assert response.json() == {'reply': 'Consider viral pharyngitis.'}

        history = doctor_client.get('/api/ai/chat/history').json()
        assert history == [
            {'role': 'user', 'content': 'Sore throat, fever 2 days', 'hasAttachment': False},
            {'role': 'ai', 'content': 'Consider viral pharyngitis.', 'hasAttachment': False},
        ]

    def test_previous_turns_are_sent_as_context(self, doctor_client, fake_model):
        doctor_client.post('/api/ai/chat', {'message': 'First question'}, format='multipart')
        doctor_client.post('/api/ai/chat', {'message': 'Follow-up'}, format='multipart')

        contents = fake_model.calls[-1]
        assert [turn['role'] for turn in contents] == ['user', 'model', 'user']
        assert contents[-1]['parts'] == ['Follow-up']

    def test_attachment_is_forwarded(self, doctor_client, fake_model):
        response = doctor_client.post('/api/ai/chat', {'message': '', 'file': png('report.png')}, format='multipart')

        assert response.status_code == 200
        parts = fake_model.calls[0][-1]['parts']
        assert parts[1]['mime_type'] == 'image/png'
        assert ChatMessage.objects.get(role='user').has_attachment

    def test_empty_message_is_rejected(self, doctor_client, fake_model):
        response = doctor_client.post('/api/ai/chat', {'message': '   '}, format='multipart')

        assert response.status_code == 400
        assert ChatMessage.objects.count() == 0

    def test_model_failure_keeps_user_message(self, doctor_client, fake_model):
        fake_model.error = RuntimeError('network down')

        response = doctor_client.post('/api/ai/chat', {'message': 'Dose of amoxicillin for a child?'},
                                      format='multipart')

        assert response.status_code == 503
        assert response.json() == {'message': 'CDSS unreachable'}
        assert list(ChatMessage.objects.values_list('role', flat=True)) == ['user']

    def test_clear_resets_to_greeting(self, doctor_client, fake_model, doctor_user):
        doctor_client.post('/api/ai/chat', {'message': 'Hello'}, format='multipart')

        response = doctor_client.delete('/api/ai/chat/history')

        assert response.status_code == 200
        assert response.json() == [{'role': 'ai', 'content': GREETING, 'hasAttachment': False}]
        assert not ChatMessage.objects.filter(user=doctor_user).exists()
        assert doctor_client.get('/api/ai/chat/history').json() == response.json()

    def test_history_is_per_doctor(self, doctor_client, fake_model, make_user, client_for):
        doctor_client.post('/api/ai/chat', {'message': 'Hello'}, format='multipart')
        other = client_for(make_user('doctor'))

        assert len(other.get('/api/ai/chat/history').json()) == 1

    def test_doctor_only(self, pharmacy_client):
        assert pharmacy_client.post('/api/ai/chat', {'message': 'hi'}, format='multipart').status_code == 403
