from datetime import timedelta
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from faker import Faker
import random

from profiles.models import EndUser, Pharmacy
from appointment.models import Appointment
from pharmacy.models import StockItem

fake = Faker('en_IN')

MEDICINE_NAMES = [
    'Paracetamol 500mg', 'Ibuprofen 400mg', 'Amoxicillin 500mg',
    'Azithromycin 500mg', 'Metformin 500mg', 'Telmisartan 40mg',
    'Atorvastatin 20mg', 'Pantoprazole 40mg', 'Amlodipine 5mg',
    'Cetirizine 10mg', 'Levothyroxine 50mcg', 'Salbutamol Inhaler',
    'Montelukast 10mg', 'Dolo 650', 'Ondansetron 4mg',
    'Glimepiride 2mg', 'ORS Sachet', 'Vitamin D3 60000IU',
    'Folic Acid 5mg', 'Calcium Carbonate 500mg', 'Domperidone 10mg',
    'Ranitidine 150mg', 'Diclofenac Gel 30g', 'Insulin Glargine',
]

SPECIALIZATIONS = [
    'General Physician', 'Cardiologist', 'Dermatologist', 'Pediatrician',
    'Gynecologist', 'Orthopedic Surgeon', 'ENT Specialist', 'Psychiatrist',
]

SERVICES = [
    'General Consultation', 'Health Checkup', 'Vaccination', 'ECG',
    'Diabetes Care', 'Blood Pressure Monitoring', 'Teleconsultation',
]

REASONS = [
    'Fever and body ache', 'Persistent cough', 'Follow-up visit',
    'Skin rash', 'Chest discomfort', 'Routine checkup', 'Headache and dizziness',
]

class Command(BaseCommand):
    help = 'Seed the database with sample pharmacies, doctors, patients and appointments'

    def add_arguments(self, parser):
        parser.add_argument('--pharmacies', type=int, default=3, help='Number of pharmacies to create')
        parser.add_argument('--doctors', type=int, default=4, help='Number of doctors to create')
        parser.add_argument('--patients', type=int, default=10, help='Number of patients to create')

    def handle(self, *args, **options):
        with transaction.atomic():
            self.stdout.write('Initializing database...')

            pharmacies = self.create_pharmacies(options['pharmacies'])
            doctors = self.create_doctors(options['doctors'], pharmacies)
            patients = self.create_patients(options['patients'])
            self.create_appointments(doctors, patients)

            self.stdout.write(
                self.style.SUCCESS('Database initialized successfully!')
            )

    def get_or_create_user(self, uid, role):
        user, _ = EndUser.objects.get_or_create(
            identity_uid=uid,
            defaults={
                'username': uid,
                'email': f'{uid}@sehatsetu.example',
                'name': fake.name(),
                'role': role,
            }
        )
        return user

    def create_pharmacies(self, count):
        """Create pharmacy owners, their profiles and stock"""
        self.stdout.write('Creating pharmacies...')

        pharmacies = []
        for i in range(count):
            owner = self.get_or_create_user(f'seed-pharmacy-{i + 1}', 'pharmacy')
            pharmacy, created = Pharmacy.objects.get_or_create(
                owner=owner,
                defaults={
                    'name': f'{fake.last_name()} Medicals',
                    'address': fake.address(),
                    'phone': fake.numerify('98########'),
                    'latitude': float(fake.latitude()),
                    'longitude': float(fake.longitude()),
                }
            )
            if created:
                for name in random.sample(MEDICINE_NAMES, k=12):
                    StockItem.objects.create(
                        pharmacy=pharmacy,
                        medicine_name=name,
                        quantity=random.choice([0, random.randint(5, 300)]),
                        price=random.randint(10, 500),
                        created_by='system',
                        updated_by='system',
                    )
            pharmacies.append(pharmacy)

        self.stdout.write(f'Created {len(pharmacies)} pharmacies')
        return pharmacies

    def create_doctors(self, count, pharmacies):
        """Create doctors linked to some of the pharmacies"""
        self.stdout.write('Creating doctors...')

        doctors = []
        for i in range(count):
            user = self.get_or_create_user(f'seed-doctor-{i + 1}', 'doctor')
            doctor = user.doctor
            if not doctor.specialization:
                doctor.specialization = random.choice(SPECIALIZATIONS)
                doctor.phone = fake.numerify('97########')
                doctor.about = fake.paragraph(nb_sentences=3)
                doctor.services = random.sample(SERVICES, k=3)
                doctor.timings = [{'day': 'Mon - Fri', 'time': '10:00 AM - 6:00 PM'}]
                doctor.fee_first_visit = random.choice([300, 500, 800])
                doctor.fee_follow_up = random.choice([200, 300])
                doctor.save()
            if pharmacies:
                doctor.linked_pharmacies.set(random.sample(pharmacies, k=min(2, len(pharmacies))))
            doctors.append(doctor)

        self.stdout.write(f'Created {len(doctors)} doctors')
        return doctors

    def create_patients(self, count):
        """Create patients"""
        self.stdout.write('Creating patients...')

        patients = []
        for i in range(count):
            user = self.get_or_create_user(f'seed-patient-{i + 1}', 'patient')
            patient = user.patient
            if patient.date_of_birth is None:
                patient.gender = random.choice(['male', 'female'])
                patient.date_of_birth = fake.date_of_birth(minimum_age=5, maximum_age=85)
                patient.phone = fake.numerify('99########')
                patient.save()
            patients.append(patient)

        self.stdout.write(f'Created {len(patients)} patients')
        return patients

    def create_appointments(self, doctors, patients):
        """Create pending appointment requests over the coming week"""
        self.stdout.write('Creating appointments...')

        created = 0
        today = timezone.localdate()
        for doctor in doctors:
            if doctor.appointments.exists():
                continue
            for patient in random.sample(patients, k=min(4, len(patients))):
                Appointment.objects.create(
                    doctor=doctor,
                    patient=patient,
                    appointment_date=today + timedelta(days=random.randint(0, 6)),
                    appointment_time=random.choice(['10:00 AM', '11:30 AM', '2:00 PM', '4:30 PM']),
                    reason=random.choice(REASONS),
                    created_by='system',
                    updated_by='system',
                )
                created += 1

        self.stdout.write(f'Created {created} appointments')
