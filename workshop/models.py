# ortoist/workshop/models.py

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
import uuid

from workshop.errors import ValidationError


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Role(str, Enum):
    TECHNICIAN = "technician"
    DOCTOR = "doctor"


def parse_price(value):
    """Parses a price given as text or number into a non-negative Decimal."""
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError("Price is required.")
    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValidationError(f"'{text}' is not a valid price.") from e
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Price must be a non-negative number.")
    return amount


class User:
    """A technician or doctor account."""
    def __init__(self, username, password_hash, salt, full_name, email, role, created_at=None):
        self.username = username
        self.password_hash = password_hash
        self.salt = salt
        self.full_name = full_name
        self.email = email
        self.role = Role(role)
        self.created_at = created_at or datetime.now().isoformat()

    @property
    def is_doctor(self):
        return self.role == Role.DOCTOR

    def to_dict(self):
        return {
            'username': self.username,
            'password_hash': self.password_hash,
            'salt': self.salt,
            'full_name': self.full_name,
            'email': self.email,
            'role': self.role.value,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            username=data['username'],
            password_hash=data.get('password_hash', ''),
            salt=data.get('salt', ''),
            full_name=data.get('full_name', ''),
            email=data.get('email', ''),
            role=data.get('role', Role.TECHNICIAN.value),
            created_at=data.get('created_at'),
        )


class Job:
    """A unit of prosthetics work a technician does for a doctor.

    The price is kept as the text the technician typed and parsed on read.
    ``doctor_email`` is set only when the doctor is a registered user;
    otherwise the doctor is known by ``doctor_name`` alone.
    """
    def __init__(self, job_id, patient_name, job_name, price, doctor_name, technician_email,
                 doctor_email=None, status=JobStatus.PENDING, payment_received=False, job_date=None):
        self.id = job_id
        self.patient_name = patient_name
        self.job_name = job_name
        self.price = price
        self.doctor_name = doctor_name
        self.doctor_email = doctor_email
        self.status = JobStatus(status)
        self.payment_received = payment_received
        self.date = job_date or date.today().isoformat()
        self.technician_email = technician_email

    @property
    def amount(self):
        return parse_price(self.price or "0")

    @property
    def is_settled(self):
        return self.status == JobStatus.COMPLETED and self.payment_received

    @property
    def is_open(self):
        return not self.payment_received

    def to_dict(self):
        return {
            'id': self.id,
            'patient_name': self.patient_name,
            'job_name': self.job_name,
            'price': self.price,
            'doctor_name': self.doctor_name,
            'doctor_email': self.doctor_email,
            'status': self.status.value,
            'payment_received': self.payment_received,
            'date': self.date,
            'technician_email': self.technician_email,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            job_id=data['id'],
            patient_name=data.get('patient_name', ''),
            job_name=data.get('job_name', ''),
            price=data.get('price', '0'),
            doctor_name=data.get('doctor_name', ''),
            doctor_email=data.get('doctor_email'),
            status=data.get('status', JobStatus.PENDING.value),
            payment_received=bool(data.get('payment_received', False)),
            job_date=data.get('date'),
            technician_email=data.get('technician_email', ''),
        )

    def __repr__(self):
        return f"Job(id={self.id!r}, patient={self.patient_name!r}, status={self.status.value}, paid={self.payment_received})"


class PriceListEntry:
    def __init__(self, job_type, price, notes=""):
        self.type = job_type
        self.price = Decimal(str(price))
        self.notes = notes

    def to_dict(self):
        return {'type': self.type, 'price': str(self.price), 'notes': self.notes}

    @classmethod
    def from_dict(cls, data):
        return cls(job_type=data.get('type', ''), price=data.get('price', '0'), notes=data.get('notes', ''))


class CalendarNote:
    def __init__(self, note_date, text, note_id=None):
        self.id = note_id or str(uuid.uuid4())
        self.date = note_date
        self.text = text

    def to_dict(self):
        return {'id': self.id, 'date': self.date, 'text': self.text}

    @classmethod
    def from_dict(cls, data):
        return cls(note_date=data['date'], text=data.get('text', ''), note_id=data.get('id'))
