import uuid
from datetime import date

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from appointment.models import Appointment
from common.utils import generate_identity_token
from profiles.models import EndUser, Pharmacy


@pytest.fixture(autouse=True)
def clear_query_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_user(db):
    def make(role='patient', name=None, **extra):
        uid = f'{role}-{uuid.uuid4().hex[:12]}'
        return EndUser.objects.create_user(
            identity_uid=uid,
            email=f'{uid}@example.com',
            name=name or f'Test {role.title()}',
            role=role,
            **extra
        )
    return make


@pytest.fixture
def client_for():
    def authenticated(user):
        client = APIClient()
        token = generate_identity_token(user.identity_uid, email=user.email, name=user.name)
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        return client
    return authenticated


@pytest.fixture
def doctor_user(make_user):
    user = make_user('doctor', name='Anita Rao')
    user.doctor.specialization = 'General Physician'
    user.doctor.save()
    return user


@pytest.fixture
def doctor(doctor_user):
    return doctor_user.doctor


@pytest.fixture
def doctor_client(doctor_user, client_for):
    return client_for(doctor_user)


@pytest.fixture
def pharmacy_user(make_user):
    return make_user('pharmacy', name='Ravi Kumar')


@pytest.fixture
def pharmacy(pharmacy_user):
    return Pharmacy.objects.create(
        owner=pharmacy_user,
        name='City Medicals',
        address='12 MG Road, Pune',
        phone='9800000000',
        latitude=18.52,
        longitude=73.85,
    )


@pytest.fixture
def pharmacy_client(pharmacy_user, client_for):
    return client_for(pharmacy_user)


@pytest.fixture
def patient_user(make_user):
    user = make_user('patient', name='Meera Shah')
    user.patient.gender = 'female'
    user.patient.date_of_birth = date(1990, 5, 17)
    user.patient.phone = '9900000000'
    user.patient.save()
    return user


@pytest.fixture
def patient(patient_user):
    return patient_user.patient


@pytest.fixture
def make_appointment(doctor, patient):
    def make(status='pending', **extra):
        fields = {
            'doctor': doctor,
            'patient': patient,
            'appointment_date': timezone.localdate(),
            'appointment_time': '10:30 AM',
            'reason': 'Fever and cough',
            'status': status,
        }
        fields.update(extra)
        return Appointment.objects.create(**fields)
    return make


@pytest.fixture
def appointment(make_appointment):
    return make_appointment()
