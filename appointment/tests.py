from datetime import timedelta

import pytest
from django.utils import timezone

from appointment.models import Appointment
from common.exceptions import TransitionError
from pharmacy.models import Prescription

pytestmark = pytest.mark.django_db


class TestAppointmentTransitions:
    def test_pending_can_be_accepted_or_rejected(self, appointment):
        assert appointment.can_transition_to('accepted')
        assert appointment.can_transition_to('rejected')
        assert not appointment.can_transition_to('completed')

    @pytest.mark.parametrize('terminal', ['rejected', 'completed', 'canceled'])
    def test_terminal_states_never_change(self, make_appointment, terminal):
        appointment = make_appointment(status=terminal)

        assert appointment.is_terminal
        for target in ['pending', 'accepted', 'rejected', 'completed', 'canceled']:
            with pytest.raises(TransitionError):
                appointment.transition_to(target)

    def test_transition_records_actor(self, appointment, doctor_user):
        appointment.transition_to('accepted', doctor_user)
        appointment.refresh_from_db()

        assert appointment.status == 'accepted'
        assert appointment.updated_by == doctor_user.email


class TestDoctorAppointments:
    def test_pending_requests_come_first(self, doctor_client, make_appointment):
        today = timezone.localdate()
        accepted = make_appointment(status='accepted', appointment_date=today + timedelta(days=3))
        pending = make_appointment(status='pending', appointment_date=today - timedelta(days=2))

        body = doctor_client.get('/api/doctor/appointments').json()

        assert [item['_id'] for item in body] == [str(pending.id), str(accepted.id)]
        assert body[0]['patientId'] == {'_id': str(pending.patient_id), 'name': 'Meera Shah'}

    def test_filter_by_status(self, doctor_client, make_appointment):
        make_appointment(status='pending')
        make_appointment(status='rejected')

        body = doctor_client.get('/api/doctor/appointments', {'status': 'rejected'}).json()

        assert [item['status'] for item in body] == ['rejected']

    def test_accepting_exposes_prescription_link(self, doctor_client, appointment, patient):
        listed = doctor_client.get('/api/doctor/appointments').json()[0]
        assert listed['prescriptionLink'] is None

        response = doctor_client.put(f'/api/doctor/appointments/{appointment.id}', {'status': 'accepted'}, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['message'] == 'Appointment accepted.'
        assert body['appointment']['status'] == 'accepted'
        link = body['appointment']['prescriptionLink']
        assert f'appointmentId={appointment.id}' in link
        assert f'patientId={patient.pk}' in link

        pending = doctor_client.get('/api/doctor/appointments', {'status': 'pending'}).json()
        assert pending == []

    def test_invalid_transition_is_rejected(self, doctor_client, make_appointment):
        appointment = make_appointment(status='rejected')

        response = doctor_client.put(f'/api/doctor/appointments/{appointment.id}', {'status': 'accepted'}, format='json')

        assert response.status_code == 400
        appointment.refresh_from_db()
        assert appointment.status == 'rejected'

    def test_other_doctors_appointment_is_not_found(self, make_user, client_for, appointment):
        other = client_for(make_user('doctor'))

        response = other.put(f'/api/doctor/appointments/{appointment.id}', {'status': 'accepted'}, format='json')

        assert response.status_code == 404

    def test_unknown_status_is_rejected(self, doctor_client, appointment):
        response = doctor_client.put(f'/api/doctor/appointments/{appointment.id}', {'status': 'pending'}, format='json')

        assert response.status_code == 400


class TestDoctorStats:
    def test_counts(self, doctor_client, make_appointment):
        today = timezone.localdate()
        make_appointment(status='pending')
        make_appointment(status='accepted')
        make_appointment(status='rejected')
        make_appointment(status='pending', appointment_date=today + timedelta(days=1))

        body = doctor_client.get('/api/doctor/stats').json()

        assert body == {'todaysAppointments': 2, 'pendingRequests': 2, 'acceptedAppointments': 1}

    def test_stats_refresh_after_status_change(self, doctor_client, appointment):
        assert doctor_client.get('/api/doctor/stats').json()['pendingRequests'] == 1

        doctor_client.put(f'/api/doctor/appointments/{appointment.id}', {'status': 'accepted'}, format='json')

        body = doctor_client.get('/api/doctor/stats').json()
        assert body['pendingRequests'] == 0
        assert body['acceptedAppointments'] == 1


class TestPatientHistory:
    def test_only_completed_with_prescription(self, doctor_client, make_appointment, doctor, patient, pharmacy):
        with_prescription = make_appointment(status='completed')
        make_appointment(status='completed')
        prescription = Prescription.objects.create(
            appointment=with_prescription, doctor=doctor, patient=patient, pharmacy=pharmacy
        )

        body = doctor_client.get('/api/doctor/history').json()

        assert body == [{
            '_id': str(with_prescription.id),
            'appointmentDate': with_prescription.appointment_date.isoformat(),
            'patientId': {'name': 'Meera Shah'},
            'prescriptionId': str(prescription.id),
        }]

    def test_history_is_doctor_only(self, pharmacy_client):
        assert pharmacy_client.get('/api/doctor/history').status_code == 403
