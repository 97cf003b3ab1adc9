from datetime import date

import pytest
from rest_framework import serializers
from rest_framework.exceptions import NotFound

from common.cache import query_key, cached_query, invalidate_queries
from common.exceptions import api_exception_handler, first_error_message, TransitionError
from common.utils import (
    generate_identity_token, decode_identity_token, get_identity_uid,
    normalize_medicine_name, build_prescription_link, calculate_age
)


class TestIdentityTokens:
    def test_round_trip_claims(self):
        token = generate_identity_token('uid-123', email='a@example.com', name='A')
        claims = decode_identity_token(token)

        assert get_identity_uid(claims) == 'uid-123'
        assert claims['email'] == 'a@example.com'

    def test_uid_falls_back_to_subject(self):
        assert get_identity_uid({'sub': 'uid-9'}) == 'uid-9'


@pytest.mark.django_db
class TestIdentityTokenMiddleware:
    def test_missing_token_is_rejected(self, api_client):
        response = api_client.get('/api/auth/me')

        assert response.status_code == 401
        assert response.json() == {'message': 'Authentication required'}

    def test_garbage_token_is_rejected(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = api_client.get('/api/auth/me')

        assert response.status_code == 401
        assert response.json()['message'] == 'Invalid token'

    def test_expired_token_is_rejected(self, api_client, doctor_user):
        token = generate_identity_token(doctor_user.identity_uid, expires_in=-60)
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = api_client.get('/api/auth/me')

        assert response.status_code == 401
        assert response.json()['message'] == 'Token has expired'

    def test_unknown_user_is_rejected(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {generate_identity_token('nobody')}")
        response = api_client.get('/api/doctor/stats')

        assert response.status_code == 401
        assert response.json()['message'] == 'User not found'

    def test_known_user_is_authenticated(self, doctor_client, doctor_user):
        response = doctor_client.get('/api/auth/me')

        assert response.status_code == 200
        assert response.json()['_id'] == str(doctor_user.id)

    def test_wrong_role_is_forbidden(self, pharmacy_client):
        response = pharmacy_client.get('/api/doctor/stats')

        assert response.status_code == 403
        assert response.json()['message'] == 'Only doctors can access this resource.'


class TestExceptionHandler:
    def test_field_errors_are_flattened(self):
        response = api_exception_handler(
            serializers.ValidationError({'quantity': ['Ensure this value is greater than or equal to 0.']}),
            {'view': None}
        )

        assert response.status_code == 400
        assert response.data['message'] == 'quantity: Ensure this value is greater than or equal to 0.'
        assert 'errors' in response.data

    def test_detail_errors_keep_only_message(self):
        response = api_exception_handler(NotFound('Pharmacy profile not found'), {'view': None})

        assert response.status_code == 404
        assert response.data == {'message': 'Pharmacy profile not found'}

    def test_non_api_exceptions_are_left_alone(self):
        assert api_exception_handler(ValueError('boom'), {'view': None}) is None

    def test_first_error_message_of_nested_list(self):
        detail = {'medicines': [{}, {'name': ['This field is required.']}]}

        assert first_error_message(detail) == 'medicines: name: This field is required.'


def test_transition_error_message():
    error = TransitionError('Appointment', 'rejected', 'accepted')

    assert str(error) == "Appointment cannot move from 'rejected' to 'accepted'."


class TestQueryCache:
    def test_cached_until_invalidated(self):
        calls = []

        def producer():
            calls.append(1)
            return {'count': len(calls)}

        key = query_key('pharmacy_stats', 'abc')
        assert cached_query(key, producer) == {'count': 1}
        assert cached_query(key, producer) == {'count': 1}

        invalidate_queries(key)
        assert cached_query(key, producer) == {'count': 2}

    def test_query_key_format(self):
        assert query_key('doctor_stats', 7, date(2024, 1, 2)) == 'query:doctor_stats:7:2024-01-02'


def test_normalize_medicine_name():
    assert normalize_medicine_name('  Paracetamol   500mg ') == 'Paracetamol 500mg'
    assert normalize_medicine_name(None) == ''


@pytest.mark.django_db
def test_prescription_link_is_scoped_to_patient(make_appointment, patient):
    appointment = make_appointment(status='accepted')
    link = build_prescription_link(appointment)

    assert link.startswith('/doctor/prescription?')
    assert f'appointmentId={appointment.id}' in link
    assert f'patientId={patient.pk}' in link
    assert 'patientName=Meera+Shah' in link


def test_calculate_age():
    born = date(2000, 1, 1)

    assert calculate_age(born) >= 24
