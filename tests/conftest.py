import pytest
from cryptography.fernet import Fernet

from workshop.jobs import JobDraft
from workshop.service import WorkshopService
from workshop.storage import LocalStore


@pytest.fixture
def encryptor():
    return Fernet(Fernet.generate_key())


@pytest.fixture
def store(tmp_path, encryptor):
    return LocalStore(str(tmp_path / "records.json"), encryptor)


@pytest.fixture
def service(store):
    return WorkshopService(store=store)


@pytest.fixture
def technician(service):
    return service.accounts.register("ali", "secret", "secret", "Ali Usta", "ali@lab.com", "technician")


@pytest.fixture
def doctor(service):
    return service.accounts.register("demir", "secret", "secret", "Dr. Demir", "d@x.com", "doctor")


def _draft(patient="Ayşe", job="Crown", price="1000.00", doctor_email=None, custom="Dr. Demir"):
    if doctor_email:
        custom = None
    return JobDraft(patient_name=patient, job_name=job, price=price,
                    doctor_email=doctor_email, custom_doctor_name=custom)


@pytest.fixture
def make_draft():
    return _draft

