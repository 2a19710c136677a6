import pytest

from healthcare.models import Hospital, MedicalRecord, Sequence, next_identifier

pytestmark = pytest.mark.django_db


def test_identifiers_are_zero_padded_and_increasing():
    assert next_identifier('TST') == 'TST000001'
    assert next_identifier('TST') == 'TST000002'
    assert next_identifier('OTH', width=3) == 'OTH001'
    assert Sequence.objects.get(name='TST').value == 2


def test_models_draw_their_own_prefix(hospital, patient, doctor):
    assert hospital.hospital_id.startswith('HOSP')
    assert patient.patient_profile.patient_id.startswith('PAT')
    assert doctor.professional_profile.professional_id.startswith('DOC')

    first = MedicalRecord.objects.create(patient=patient, doctor=doctor, hospital=hospital, chief_complaint='a')
    second = MedicalRecord.objects.create(patient=patient, doctor=doctor, hospital=hospital, chief_complaint='b')
    assert first.record_id == 'MR000001'
    assert second.record_id == 'MR000002'


def test_identifier_is_kept_on_resave(hospital):
    original = hospital.hospital_id
    hospital.name = 'Renamed'
    hospital.save()
    assert Hospital.objects.get(pk=hospital.pk).hospital_id == original
