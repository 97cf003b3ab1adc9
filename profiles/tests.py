import pytest

from common.utils import generate_identity_token
from profiles.models import EndUser, Pharmacy

pytestmark = pytest.mark.django_db


def bearer(uid, **claims):
    return {'HTTP_AUTHORIZATION': f'Bearer {generate_identity_token(uid, **claims)}'}


class TestSessionSync:
    def test_first_sync_registers_doctor(self, api_client):
        response = api_client.post(
            '/api/auth/sync',
            {'name': 'Dr. Kavya Iyer', 'role': 'doctor', 'specialization': 'Cardiologist'},
            format='json',
            **bearer('new-doctor', email='kavya@example.com')
        )

        assert response.status_code == 201
        body = response.json()
        assert body['role'] == 'doctor'
        assert body['specialization'] == 'Cardiologist'
        assert body['email'] == 'kavya@example.com'

        user = EndUser.objects.get(identity_uid='new-doctor')
        assert user.doctor.specialization == 'Cardiologist'

    def test_role_defaults_to_patient(self, api_client):
        response = api_client.post('/api/auth/sync', {}, format='json', **bearer('walk-in', name='Sam'))

        assert response.status_code == 201
        assert response.json()['role'] == 'patient'
        assert response.json()['name'] == 'Sam'
        assert EndUser.objects.get(identity_uid='walk-in').patient is not None

    def test_existing_user_is_refreshed_not_duplicated(self, api_client, doctor_user):
        response = api_client.post(
            '/api/auth/sync', {'name': 'Anita R. Rao'}, format='json', **bearer(doctor_user.identity_uid)
        )

        assert response.status_code == 200
        assert response.json()['name'] == 'Anita R. Rao'
        assert EndUser.objects.filter(identity_uid=doctor_user.identity_uid).count() == 1

    def test_sync_requires_token(self, api_client):
        response = api_client.post('/api/auth/sync', {}, format='json')

        assert response.status_code == 401

    def test_unknown_role_is_rejected(self, api_client):
        response = api_client.post('/api/auth/sync', {'role': 'admin'}, format='json', **bearer('sneaky'))

        assert response.status_code == 400
        assert response.json()['message'].startswith('role:')


class TestPreferences:
    def test_defaults(self, doctor_client):
        response = doctor_client.get('/api/auth/preferences')

        assert response.json() == {'sidebarCollapsed': False, 'theme': 'system'}

    def test_update_merges(self, doctor_client):
        doctor_client.put('/api/auth/preferences', {'theme': 'dark'}, format='json')
        response = doctor_client.put('/api/auth/preferences', {'sidebarCollapsed': True}, format='json')

        assert response.status_code == 200
        assert response.json() == {'sidebarCollapsed': True, 'theme': 'dark'}

    def test_unknown_key_is_rejected(self, doctor_client):
        response = doctor_client.put('/api/auth/preferences', {'fontSize': 14}, format='json')

        assert response.status_code == 400


class TestDoctorProfile:
    def test_update_profile(self, doctor_client, pharmacy):
        response = doctor_client.put('/api/doctor/profile', {
            'name': 'Dr. Anita Rao',
            'specialization': 'Pediatrician',
            'services': ['Vaccination', 'Growth monitoring'],
            'timings': [{'day': 'Mon - Fri', 'time': '10:00 AM - 2:00 PM'}],
            'consultationFee': {'firstVisit': 500, 'followUp': 300},
            'latitude': 18.5,
            'longitude': 73.8,
            'linkedPharmacies': [str(pharmacy.id)],
        }, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['name'] == 'Dr. Anita Rao'
        assert body['consultationFee'] == {'firstVisit': 500.0, 'followUp': 300.0}
        assert body['location'] == {'type': 'Point', 'coordinates': [73.8, 18.5]}
        assert body['linkedPharmacies'] == [str(pharmacy.id)]

    def test_unknown_pharmacy_is_rejected(self, doctor_client):
        response = doctor_client.put('/api/doctor/profile', {
            'linkedPharmacies': ['00000000-0000-0000-0000-000000000000'],
        }, format='json')

        assert response.status_code == 400

    def test_negative_fee_is_rejected(self, doctor_client):
        response = doctor_client.put('/api/doctor/profile', {
            'consultationFee': {'firstVisit': -1},
        }, format='json')

        assert response.status_code == 400

    def test_latitude_without_longitude_is_rejected(self, doctor_client):
        response = doctor_client.put('/api/doctor/profile', {'latitude': 10}, format='json')

        assert response.status_code == 400

    def test_blank_form_values_are_accepted(self, doctor_client, doctor):
        doctor.fee_first_visit = 400
        doctor.save()

        response = doctor_client.put('/api/doctor/profile', {
            'name': 'Dr. Anita Rao',
            'specialization': '',
            'profilePictureUrl': '',
            'phone': '',
            'about': '',
            'services': [],
            'timings': [],
            'consultationFee': {'firstVisit': '', 'followUp': ''},
            'latitude': '',
            'longitude': '',
            'linkedPharmacies': [],
        }, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['consultationFee'] == {'firstVisit': 400.0, 'followUp': 0.0}
        assert body['location'] is None

    def test_single_coordinate_completes_stored_location(self, doctor_client, doctor):
        doctor.latitude = 18.5
        doctor.longitude = 73.8
        doctor.save()

        response = doctor_client.put('/api/doctor/profile', {'latitude': 18.6}, format='json')

        assert response.status_code == 200
        assert response.json()['location'] == {'type': 'Point', 'coordinates': [73.8, 18.6]}


class TestPharmacyProfile:
    def test_status_before_and_after_creation(self, pharmacy_client):
        assert pharmacy_client.get('/api/pharmacy/profile/status').json() == {'hasProfile': False}

        response = pharmacy_client.post('/api/pharmacy/profile', {
            'name': 'Lifeline Pharmacy',
            'address': '4 Station Road',
            'phone': '9811111111',
            'latitude': 19.07,
            'longitude': 72.87,
        }, format='json')

        assert response.status_code == 201
        assert response.json()['location'] == {'type': 'Point', 'coordinates': [72.87, 19.07]}
        assert pharmacy_client.get('/api/pharmacy/profile/status').json() == {'hasProfile': True}

    def test_second_profile_conflicts(self, pharmacy_client, pharmacy):
        response = pharmacy_client.post('/api/pharmacy/profile', {
            'name': 'Another', 'address': 'Somewhere', 'phone': '1',
        }, format='json')

        assert response.status_code == 409

    def test_get_profile_includes_owner(self, pharmacy_client, pharmacy, pharmacy_user):
        body = pharmacy_client.get('/api/pharmacy/profile').json()

        assert body['_id'] == str(pharmacy.id)
        assert body['ownerId'] == {'name': pharmacy_user.name, 'email': pharmacy_user.email}

    def test_missing_profile_is_not_found(self, pharmacy_client):
        response = pharmacy_client.get('/api/pharmacy/profile')

        assert response.status_code == 404
        assert response.json()['message'].startswith('Pharmacy profile not found')

    def test_out_of_range_latitude_is_rejected(self, pharmacy_client, pharmacy):
        response = pharmacy_client.put('/api/pharmacy/profile', {'latitude': 120, 'longitude': 10}, format='json')

        assert response.status_code == 400

    def test_saving_form_without_coordinates(self, pharmacy_client, pharmacy):
        profile = pharmacy_client.get('/api/pharmacy/profile').json()

        response = pharmacy_client.put('/api/pharmacy/profile', {
            'name': profile['name'],
            'address': profile['address'],
            'phone': '9822222222',
            'latitude': '',
            'longitude': '',
        }, format='json')

        assert response.status_code == 200
        assert response.json()['phone'] == '9822222222'
        assert response.json()['location'] is None

    def test_list_for_picker(self, doctor_client, pharmacy):
        Pharmacy.objects.create(owner=EndUser.objects.create_user(identity_uid='p2', role='pharmacy'),
                                name='Apollo', address='Ring Road', phone='2')

        body = doctor_client.get('/api/pharmacy/all').json()

        assert [item['name'] for item in body] == ['Apollo', 'City Medicals']
        assert set(body[0]) == {'_id', 'name', 'address'}
