import pytest

import pharmacy
from pharmacy.models import StockItem, Prescription, PrescriptionMedicine, OfflineOrder
from pharmacy.reconciliation import reconcile_offline_order
from profiles.models import Pharmacy

pytestmark = pytest.mark.django_db


@pytest.fixture
def stock(pharmacy):
    def add(name, quantity, price=None):
        return StockItem.objects.create(pharmacy=pharmacy, medicine_name=name, quantity=quantity, price=price)
    return add


@pytest.fixture
def linked_pharmacy(doctor, pharmacy):
    doctor.linked_pharmacies.add(pharmacy)
    return pharmacy


@pytest.fixture
def prescription(doctor, patient, pharmacy, make_appointment):
    prescription = Prescription.objects.create(
        appointment=make_appointment(status='completed'),
        doctor=doctor,
        patient=patient,
        pharmacy=pharmacy,
        notes='After meals',
    )
    PrescriptionMedicine.objects.create(prescription=prescription, position=0, name='Paracetamol 500mg',
                                        dosage='500mg', frequency='1-0-1', duration='5 days', quantity=10)
    return prescription


def test_app_is_a_regular_package():
    assert pharmacy.__file__.endswith('__init__.py')


class TestStockManager:
    def test_list_sorted_by_name(self, pharmacy_client, stock):
        stock('Zinc 50mg', 4)
        stock('Amoxicillin 500mg', 20, price='35.50')

        body = pharmacy_client.get('/api/pharmacy/stock').json()

        assert [item['medicineName'] for item in body] == ['Amoxicillin 500mg', 'Zinc 50mg']
        assert body[0]['price'] == 35.5

    def test_add_new_item(self, pharmacy_client, pharmacy):
        response = pharmacy_client.post('/api/pharmacy/stock', {'medicineName': ' Cetirizine  10mg ', 'quantity': 30},
                                        format='json')

        assert response.status_code == 201
        assert response.json()['medicineName'] == 'Cetirizine 10mg'
        assert StockItem.objects.get(pharmacy=pharmacy).quantity == 30

    def test_adding_existing_name_tops_up(self, pharmacy_client, stock):
        item = stock('Paracetamol 500mg', 10)

        response = pharmacy_client.post('/api/pharmacy/stock', {'medicineName': 'paracetamol 500MG', 'quantity': 5},
                                        format='json')

        assert response.status_code == 200
        item.refresh_from_db()
        assert item.quantity == 15
        assert StockItem.objects.count() == 1

    def test_negative_quantity_is_rejected(self, pharmacy_client, pharmacy):
        response = pharmacy_client.post('/api/pharmacy/stock', {'medicineName': 'ORS', 'quantity': -1}, format='json')

        assert response.status_code == 400
        assert response.json()['message'].startswith('quantity:')

    def test_set_quantity(self, pharmacy_client, stock):
        item = stock('Dolo 650', 10)

        response = pharmacy_client.put(f'/api/pharmacy/stock/{item.id}', {'quantity': 3}, format='json')

        assert response.status_code == 200
        assert response.json()['quantity'] == 3

    def test_oversized_quantity_is_rejected(self, pharmacy_client, pharmacy):
        response = pharmacy_client.post('/api/pharmacy/stock', {'medicineName': 'ORS', 'quantity': 10 ** 20},
                                        format='json')

        assert response.status_code == 400
        assert not StockItem.objects.exists()

    def test_top_up_stops_at_column_limit(self, pharmacy_client, stock):
        item = stock('ORS', StockItem.MAX_QUANTITY - 1)

        response = pharmacy_client.post('/api/pharmacy/stock', {'medicineName': 'ORS', 'quantity': 10}, format='json')

        assert response.status_code == 200
        item.refresh_from_db()
        assert item.quantity == StockItem.MAX_QUANTITY

    def test_rename_onto_existing_name_is_rejected(self, pharmacy_client, stock):
        stock('Paracetamol 500mg', 10)
        item = stock('Crocin', 4)

        response = pharmacy_client.put(f'/api/pharmacy/stock/{item.id}', {'medicineName': 'PARACETAMOL 500mg'},
                                       format='json')

        assert response.status_code == 400
        assert response.json()['message'].startswith('medicineName:')
        item.refresh_from_db()
        assert item.medicine_name == 'Crocin'

    def test_rename_keeps_own_name(self, pharmacy_client, stock):
        item = stock('crocin', 4)

        response = pharmacy_client.put(f'/api/pharmacy/stock/{item.id}', {'medicineName': 'Crocin'}, format='json')

        assert response.status_code == 200
        assert response.json()['medicineName'] == 'Crocin'

    def test_delete(self, pharmacy_client, stock):
        item = stock('Dolo 650', 10)

        response = pharmacy_client.delete(f'/api/pharmacy/stock/{item.id}')

        assert response.status_code == 204
        assert pharmacy_client.get('/api/pharmacy/stock').json() == []

    def test_other_pharmacys_item_is_not_found(self, make_user, client_for, stock):
        item = stock('Dolo 650', 10)
        owner = make_user('pharmacy')
        Pharmacy.objects.create(owner=owner, name='Rival', address='x', phone='1')

        response = client_for(owner).put(f'/api/pharmacy/stock/{item.id}', {'quantity': 0}, format='json')

        assert response.status_code == 404

    def test_requires_pharmacy_profile(self, pharmacy_client):
        response = pharmacy_client.get('/api/pharmacy/stock')

        assert response.status_code == 404


class TestStockAdjust:
    def test_decrements_never_go_below_zero(self, pharmacy_client, stock):
        item = stock('Ondansetron 4mg', 3)

        for _ in range(5):
            response = pharmacy_client.post(f'/api/pharmacy/stock/{item.id}/adjust', {'delta': -1}, format='json')
            assert response.status_code == 200
            assert response.json()['quantity'] >= 0

        item.refresh_from_db()
        assert item.quantity == 0

    def test_large_decrement_clamps(self, pharmacy_client, stock):
        item = stock('Ondansetron 4mg', 3)

        response = pharmacy_client.post(f'/api/pharmacy/stock/{item.id}/adjust', {'delta': -100}, format='json')

        assert response.json()['quantity'] == 0

    def test_increment(self, pharmacy_client, stock):
        item = stock('Ondansetron 4mg', 3)

        response = pharmacy_client.post(f'/api/pharmacy/stock/{item.id}/adjust', {'delta': 7}, format='json')

        assert response.json()['quantity'] == 10

    def test_model_adjust_clamps(self):
        item = StockItem(medicine_name='x', quantity=2)

        assert item.adjust(-5) == 0
        assert item.adjust(4) == 4
        assert item.adjust(StockItem.MAX_QUANTITY) == StockItem.MAX_QUANTITY

    def test_oversized_delta_is_rejected(self, pharmacy_client, stock):
        item = stock('Ondansetron 4mg', 3)

        response = pharmacy_client.post(f'/api/pharmacy/stock/{item.id}/adjust', {'delta': 10 ** 20}, format='json')

        assert response.status_code == 400
        assert response.json()['message'].startswith('delta:')
        item.refresh_from_db()
        assert item.quantity == 3


class TestPharmacyStats:
    def test_counts_and_invalidation(self, pharmacy_client, stock, prescription):
        item = stock('Dolo 650', 0)
        stock('ORS Sachet', 12)

        assert pharmacy_client.get('/api/pharmacy/stats').json() == {
            'totalMedicines': 2, 'pendingPrescriptions': 1, 'outOfStock': 1,
        }

        pharmacy_client.post(f'/api/pharmacy/stock/{item.id}/adjust', {'delta': 5}, format='json')
        pharmacy_client.put(f'/api/pharmacy/prescriptions/{prescription.id}', {'status': 'ready_for_pickup'},
                            format='json')

        assert pharmacy_client.get('/api/pharmacy/stats').json() == {
            'totalMedicines': 2, 'pendingPrescriptions': 0, 'outOfStock': 0,
        }


class TestPharmacyPrescriptions:
    def test_list(self, pharmacy_client, prescription):
        body = pharmacy_client.get('/api/pharmacy/prescriptions').json()

        assert len(body) == 1
        assert body[0]['patientId'] == {'name': 'Meera Shah'}
        assert body[0]['doctorId'] == {'name': 'Anita Rao', 'specialization': 'General Physician'}
        assert body[0]['medicines'][0]['name'] == 'Paracetamol 500mg'
        assert body[0]['status'] == 'pending'

    def test_fulfilment_flow(self, pharmacy_client, prescription):
        url = f'/api/pharmacy/prescriptions/{prescription.id}'

        response = pharmacy_client.put(url, {'status': 'ready_for_pickup', 'pharmacyNotes': 'Packed'}, format='json')
        assert response.status_code == 200
        assert response.json()['prescription']['pharmacyNotes'] == 'Packed'

        response = pharmacy_client.put(url, {'status': 'dispensed'}, format='json')
        assert response.status_code == 200

        response = pharmacy_client.put(url, {'status': 'ready_for_pickup'}, format='json')
        assert response.status_code == 400
        prescription.refresh_from_db()
        assert prescription.status == 'dispensed'

    def test_cannot_skip_to_dispensed(self, pharmacy_client, prescription):
        response = pharmacy_client.put(f'/api/pharmacy/prescriptions/{prescription.id}', {'status': 'dispensed'},
                                       format='json')

        assert response.status_code == 400

    def test_other_pharmacy_cannot_update(self, make_user, client_for, prescription):
        owner = make_user('pharmacy')
        Pharmacy.objects.create(owner=owner, name='Rival', address='x', phone='1')

        response = client_for(owner).put(f'/api/pharmacy/prescriptions/{prescription.id}',
                                         {'status': 'ready_for_pickup'}, format='json')

        assert response.status_code == 404


class TestReconciliation:
    def test_verdicts(self, pharmacy, stock, pharmacy_user):
        paracetamol = stock('Paracetamol 500mg', 10)
        amoxicillin = stock('Amoxicillin 500mg', 2)

        order, lines = reconcile_offline_order(pharmacy, [
            {'name': 'paracetamol 500mg', 'quantity': 4},
            {'name': 'Amoxicillin 500mg', 'quantity': 5},
            {'name': 'Unobtainium', 'quantity': 1},
        ], pharmacy_user)

        assert [line.status for line in lines] == ['Sold', 'Out of Stock', 'Not Found']
        assert [line.remaining_stock for line in lines] == [6, 2, None]

        paracetamol.refresh_from_db()
        amoxicillin.refresh_from_db()
        assert paracetamol.quantity == 6
        assert amoxicillin.quantity == 2
        assert order.lines.count() == 3
        assert order.created_by == pharmacy_user.email

    def test_exact_quantity_sells_out(self, pharmacy, stock):
        item = stock('ORS Sachet', 3)

        _, lines = reconcile_offline_order(pharmacy, [{'name': 'ORS Sachet', 'quantity': 3}])

        assert lines[0].status == 'Sold'
        item.refresh_from_db()
        assert item.quantity == 0

    def test_repeated_rows_draw_down_the_same_item(self, pharmacy, stock):
        stock('ORS Sachet', 3)

        _, lines = reconcile_offline_order(pharmacy, [
            {'name': 'ORS Sachet', 'quantity': 2},
            {'name': 'ORS Sachet', 'quantity': 2},
        ])

        assert [line.status for line in lines] == ['Sold', 'Out of Stock']


class TestProcessOfflineOrder:
    def test_partial_success_summary(self, pharmacy_client, stock):
        stock('Paracetamol 500mg', 10)
        stock('Azithromycin 500mg', 1)

        response = pharmacy_client.post('/api/pharmacy/process-offline-order', {'medicines': [
            {'name': 'Paracetamol 500mg', 'dosage': '500mg', 'frequency': '1-0-1', 'duration': '3 days', 'quantity': 6},
            {'name': 'Azithromycin 500mg', 'dosage': '500mg', 'frequency': '1-0-0', 'duration': '3 days', 'quantity': 3},
            {'name': 'Mystery Syrup', 'quantity': 1},
            {'name': '   ', 'quantity': 2},
        ]}, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['summary'] == {'sold': 1, 'outOfStock': 1, 'notFound': 1}
        assert body['message'].startswith('Partial success')
        assert body['details'] == [
            {'name': 'Paracetamol 500mg', 'quantity': 6, 'status': 'Sold', 'remainingStock': 4},
            {'name': 'Azithromycin 500mg', 'quantity': 3, 'status': 'Out of Stock', 'remainingStock': 1},
            {'name': 'Mystery Syrup', 'quantity': 1, 'status': 'Not Found', 'remainingStock': None},
        ]
        assert OfflineOrder.objects.filter(pk=body['orderId']).exists()

    def test_full_success_message(self, pharmacy_client, stock):
        stock('Paracetamol 500mg', 10)

        response = pharmacy_client.post('/api/pharmacy/process-offline-order', {'medicines': [
            {'name': 'Paracetamol 500mg', 'quantity': 2},
        ]}, format='json')

        assert response.json()['message'].startswith('Sale complete')
        assert response.json()['summary'] == {'sold': 1, 'outOfStock': 0, 'notFound': 0}

    def test_only_blank_rows_is_rejected(self, pharmacy_client, pharmacy):
        response = pharmacy_client.post('/api/pharmacy/process-offline-order', {'medicines': [
            {'name': '', 'quantity': 1},
        ]}, format='json')

        assert response.status_code == 400
        assert OfflineOrder.objects.count() == 0

    def test_zero_quantity_is_rejected(self, pharmacy_client, stock):
        item = stock('Paracetamol 500mg', 10)

        response = pharmacy_client.post('/api/pharmacy/process-offline-order', {'medicines': [
            {'name': 'Paracetamol 500mg', 'quantity': 0},
        ]}, format='json')

        assert response.status_code == 400
        item.refresh_from_db()
        assert item.quantity == 10

    def test_oversized_quantity_is_rejected(self, pharmacy_client, stock):
        stock('Paracetamol 500mg', 10)

        response = pharmacy_client.post('/api/pharmacy/process-offline-order', {'medicines': [
            {'name': 'Paracetamol 500mg', 'quantity': 10 ** 20},
        ]}, format='json')

        assert response.status_code == 400
        assert OfflineOrder.objects.count() == 0

    def test_long_text_is_cut_to_line_width(self, pharmacy_client, stock):
        stock('Paracetamol 500mg', 10)
        instructions = 'Take one tablet after food, ' * 10

        response = pharmacy_client.post('/api/pharmacy/process-offline-order', {'medicines': [
            {'name': 'Paracetamol 500mg', 'dosage': instructions, 'frequency': instructions,
             'duration': instructions, 'quantity': 2},
        ]}, format='json')

        assert response.status_code == 200
        assert response.json()['summary'] == {'sold': 1, 'outOfStock': 0, 'notFound': 0}
        line = OfflineOrder.objects.get().lines.get()
        assert len(line.dosage) <= 100
        assert instructions.startswith(line.dosage)


class TestDoctorPrescriptions:
    def payload(self, appointment, pharmacy, **overrides):
        data = {
            'appointmentId': str(appointment.id),
            'patientId': str(appointment.patient_id),
            'pharmacyId': str(pharmacy.id),
            'medicines': [
                {'name': 'Amoxicillin 500mg', 'dosage': '500mg', 'frequency': '1-1-1', 'duration': '5 days',
                 'quantity': 15},
                {'name': 'Paracetamol 500mg', 'dosage': '500mg', 'duration': '3 days'},
            ],
            'notes': 'Review after a week',
        }
        data.update(overrides)
        return data

    def test_create_completes_appointment(self, doctor_client, make_appointment, linked_pharmacy):
        appointment = make_appointment(status='accepted')

        response = doctor_client.post('/api/doctor/prescriptions', self.payload(appointment, linked_pharmacy),
                                      format='json')

        assert response.status_code == 201
        body = response.json()['prescription']
        assert body['status'] == 'pending'
        assert [m['name'] for m in body['medicines']] == ['Amoxicillin 500mg', 'Paracetamol 500mg']
        assert body['medicines'][1]['quantity'] == 1
        appointment.refresh_from_db()
        assert appointment.status == 'completed'

    def test_requires_accepted_appointment(self, doctor_client, appointment, linked_pharmacy):
        response = doctor_client.post('/api/doctor/prescriptions', self.payload(appointment, linked_pharmacy),
                                      format='json')

        assert response.status_code == 400
        assert Prescription.objects.count() == 0

    def test_requires_linked_pharmacy(self, doctor_client, make_appointment, pharmacy):
        appointment = make_appointment(status='accepted')

        response = doctor_client.post('/api/doctor/prescriptions', self.payload(appointment, pharmacy),
                                      format='json')

        assert response.status_code == 400
        appointment.refresh_from_db()
        assert appointment.status == 'accepted'

    def test_patient_must_match(self, doctor_client, make_appointment, linked_pharmacy, make_user):
        appointment = make_appointment(status='accepted')
        stranger = make_user('patient')

        response = doctor_client.post('/api/doctor/prescriptions',
                                      self.payload(appointment, linked_pharmacy, patientId=str(stranger.id)),
                                      format='json')

        assert response.status_code == 400

    def test_medicine_needs_dosage_and_duration(self, doctor_client, make_appointment, linked_pharmacy):
        appointment = make_appointment(status='accepted')

        response = doctor_client.post('/api/doctor/prescriptions', self.payload(
            appointment, linked_pharmacy, medicines=[{'name': 'Amoxicillin 500mg'}]
        ), format='json')

        assert response.status_code == 400

    def test_empty_medicines_rejected(self, doctor_client, make_appointment, linked_pharmacy):
        appointment = make_appointment(status='accepted')

        response = doctor_client.post('/api/doctor/prescriptions',
                                      self.payload(appointment, linked_pharmacy, medicines=[]), format='json')

        assert response.status_code == 400

    def test_detail_and_download(self, doctor_client, prescription):
        detail = doctor_client.get(f'/api/doctor/prescriptions/{prescription.id}').json()

        assert detail['patient']['name'] == 'Meera Shah'
        assert detail['patient']['gender'] == 'female'
        assert detail['pharmacy']['name'] == 'City Medicals'
        assert detail['medicines'][0]['frequency'] == '1-0-1'

        response = doctor_client.get(f'/api/doctor/prescriptions/{prescription.id}/download')

        assert response.status_code == 200
        assert response['Content-Disposition'] == f'attachment; filename="prescription-{prescription.id}.html"'
        assert 'Paracetamol 500mg' in response.content.decode()

    def test_other_doctor_cannot_read(self, make_user, client_for, prescription):
        other = client_for(make_user('doctor'))

        assert other.get(f'/api/doctor/prescriptions/{prescription.id}').status_code == 404

    def test_linked_pharmacy_stock(self, doctor_client, linked_pharmacy, stock):
        stock('Paracetamol 500mg', 10)

        body = doctor_client.get(f'/api/doctor/pharmacy/{linked_pharmacy.id}/stock').json()

        assert body == [{'_id': body[0]['_id'], 'medicineName': 'Paracetamol 500mg', 'quantity': 10}]

    def test_unlinked_pharmacy_stock_is_forbidden(self, doctor_client, pharmacy):
        response = doctor_client.get(f'/api/doctor/pharmacy/{pharmacy.id}/stock')

        assert response.status_code == 403
