# ortoist/workshop/jobs.py

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, Dict, List, Optional

from workshop.errors import NotFoundError, ValidationError
from workshop.events import CLEAR, UPDATE, JobEvents, JobUpdate
from workshop.models import Job, JobStatus, User, parse_price
from workshop.stats import compute_technician_stats
from workshop.storage import LocalStore

logger = logging.getLogger(__name__)

DOCTOR_INDEX_KEY = "doctor_index"

# Job list views
ACTIVE = "active"
COMPLETED = "completed"
ALL = "all"

# (status, payment_received) -> states reachable from it
ALLOWED_TRANSITIONS = {
    (JobStatus.PENDING, False): {(JobStatus.COMPLETED, False), (JobStatus.COMPLETED, True)},
    (JobStatus.COMPLETED, False): {(JobStatus.COMPLETED, True)},
    (JobStatus.COMPLETED, True): set(),
}


def jobs_key(technician_email: str) -> str:
    return f"{technician_email}_jobs"


def pending_jobs_key(technician_email: str) -> str:
    return f"{technician_email}_pendingJobs"


def doctor_key(doctor_email: Optional[str], doctor_name: str) -> str:
    if doctor_email:
        return f"email:{doctor_email}"
    return f"name:{doctor_name}"


def describe_state(status: JobStatus, payment_received: bool) -> str:
    if status == JobStatus.COMPLETED and payment_received:
        return "completed"
    if status == JobStatus.COMPLETED:
        return "done, payment pending"
    if payment_received:
        return "in progress, paid"
    return "in progress"


def filter_jobs(jobs: List[Job], view: str = ACTIVE) -> List[Job]:
    """Filters a job list for the active / completed / all views."""
    if view == ACTIVE:
        return [job for job in jobs if job.is_open]
    if view == COMPLETED:
        return [job for job in jobs if job.is_settled]
    if view == ALL:
        return list(jobs)
    raise ValidationError(f"Unknown job view '{view}'.")


@dataclass
class JobDraft:
    """What the job-entry form submits.

    Exactly one of ``doctor_email`` (a registered doctor picked from the
    list) and ``custom_doctor_name`` (a doctor typed in by name) is set.
    """

    patient_name: str
    job_name: str
    price: str
    doctor_email: Optional[str] = None
    custom_doctor_name: Optional[str] = None


class JobStore:
    """Job partitions, one per technician, plus a doctor lookup index."""

    def __init__(
        self,
        store: LocalStore,
        events: JobEvents,
        doctor_lookup: Optional[Callable[[str], Optional[User]]] = None,
    ) -> None:
        self._store = store
        self._events = events
        self._doctor_lookup = doctor_lookup

    # --- Reads ---

    def list_all(self, technician_email: str) -> List[Job]:
        return [Job.from_dict(item) for item in self._store.get(jobs_key(technician_email), [])]

    def get(self, technician_email: str, job_id: int) -> Job:
        for job in self.list_all(technician_email):
            if job.id == job_id:
                return job
        raise NotFoundError(f"Job {job_id} was not found.")

    def has_partition(self, technician_email: str) -> bool:
        return jobs_key(technician_email) in self._store

    def pending_count(self, technician_email: str) -> int:
        """The badge count last written for this technician."""
        return int(self._store.get(pending_jobs_key(technician_email), 0) or 0)

    def list_for_doctor(self, doctor: User) -> List[Job]:
        """Jobs from every technician that reference this doctor.

        A job matches on ``doctor_email`` when it has one, otherwise on an
        exact ``doctor_name`` match with the doctor's full name.
        """
        index = self._load_index()
        if index is None:
            index = self.rebuild_doctor_index()

        refs = []
        if doctor.email:
            refs.extend(index.get(doctor_key(doctor.email, ""), []))
        if doctor.full_name:
            refs.extend(index.get(doctor_key(None, doctor.full_name), []))

        partitions: Dict[str, Dict[int, Job]] = {}
        found = []
        for technician_email, job_id in refs:
            if technician_email not in partitions:
                partitions[technician_email] = {job.id: job for job in self.list_all(technician_email)}
            job = partitions[technician_email].get(job_id)
            if job is None:
                logger.debug("Doctor index points at missing job %s of %s", job_id, technician_email)
                continue
            found.append(job)
        return found

    # --- Writes ---

    def append(self, technician_email: str, draft: JobDraft) -> Job:
        if not technician_email:
            raise ValidationError("You need to be logged in.")

        registered = (draft.doctor_email or "").strip()
        custom = (draft.custom_doctor_name or "").strip()
        if registered and custom:
            raise ValidationError("Select a registered doctor or enter a doctor name, not both.")
        if not registered and not custom:
            raise ValidationError("Please select a doctor or enter a doctor name.")

        patient_name = (draft.patient_name or "").strip()
        job_name = (draft.job_name or "").strip()
        if not patient_name or not job_name:
            raise ValidationError("Please fill in all fields.")
        price = str(draft.price).strip() if draft.price is not None else ""
        parse_price(price)

        doctor_email = None
        doctor_name = custom
        if registered:
            doctor = self._doctor_lookup(registered) if self._doctor_lookup else None
            if doctor is None:
                raise NotFoundError("The selected doctor could not be found.")
            doctor_name = doctor.full_name
            doctor_email = doctor.email

        with self._store.lock:
            jobs = self.list_all(technician_email)
            job = Job(
                job_id=self._next_id(jobs),
                patient_name=patient_name,
                job_name=job_name,
                price=price,
                doctor_name=doctor_name,
                doctor_email=doctor_email,
                technician_email=technician_email,
            )
            jobs.append(job)

            index = self._load_index()
            if index is None:
                index = self._scan_index()
            index.setdefault(doctor_key(doctor_email, doctor_name), []).append([technician_email, job.id])

            self._commit(technician_email, jobs, UPDATE, job_id=job.id, extra={DOCTOR_INDEX_KEY: index})

        logger.info("Technician %s logged job %s for %s", technician_email, job.id, doctor_name)
        return job

    def set_status(self, technician_email: str, job_id: int, new_status, payment_received: bool) -> Job:
        try:
            status = JobStatus(new_status)
        except ValueError as e:
            raise ValidationError(f"Unknown job status '{new_status}'.") from e
        # payment_received never reverts, so only a real bool may set it.
        if not isinstance(payment_received, bool):
            raise ValidationError(f"Payment received must be true or false, not {payment_received!r}.")
        target = (status, payment_received)

        with self._store.lock:
            jobs = self.list_all(technician_email)
            job = next((j for j in jobs if j.id == job_id), None)
            if job is None:
                raise NotFoundError(f"Job {job_id} was not found.")

            current = (job.status, job.payment_received)
            if target != current and target not in ALLOWED_TRANSITIONS.get(current, set()):
                raise ValidationError(
                    f"A job that is {describe_state(*current)} cannot become {describe_state(*target)}."
                )
            job.status, job.payment_received = target
            self._commit(technician_email, jobs, UPDATE, job_id=job.id)

        logger.info("Job %s of %s is now %s", job_id, technician_email, describe_state(*target))
        return job

    def mark_done_payment_pending(self, technician_email: str, job_id: int) -> Job:
        return self.set_status(technician_email, job_id, JobStatus.COMPLETED, False)

    def mark_done_paid(self, technician_email: str, job_id: int) -> Job:
        return self.set_status(technician_email, job_id, JobStatus.COMPLETED, True)

    def mark_payment_received(self, technician_email: str, job_id: int) -> Job:
        job = self.get(technician_email, job_id)
        if job.status != JobStatus.COMPLETED:
            raise ValidationError("Only finished jobs can be marked as paid.")
        return self.set_status(technician_email, job_id, JobStatus.COMPLETED, True)

    def clear_settled(self, technician_email: str) -> int:
        """Drops completed and paid jobs, keeping everything still open."""
        with self._store.lock:
            jobs = self.list_all(technician_email)
            kept = [job for job in jobs if not job.is_settled]
            removed = {job.id for job in jobs if job.is_settled}
            if not removed:
                return 0

            index = self._load_index()
            if index is None:
                index = self._scan_index()
            for key in list(index):
                index[key] = [ref for ref in index[key] if not (ref[0] == technician_email and ref[1] in removed)]
                if not index[key]:
                    del index[key]

            self._commit(technician_email, kept, CLEAR, extra={DOCTOR_INDEX_KEY: index})

        logger.info("Cleared %s settled jobs for %s", len(removed), technician_email)
        return len(removed)

    def rename_technician(self, old_email: str, new_email: str) -> None:
        """Moves a technician's partition to a new email."""
        if old_email == new_email:
            return
        with self._store.lock:
            if self.has_partition(new_email):
                raise ValidationError(f"Jobs already exist for {new_email}.")
            jobs = self.list_all(old_email)
            for job in jobs:
                job.technician_email = new_email

            index = self._load_index()
            if index is None:
                index = self._scan_index()
            for refs in index.values():
                for ref in refs:
                    if ref[0] == old_email:
                        ref[0] = new_email

            pending = compute_technician_stats(jobs).pending_jobs
            self._store.write(
                {
                    jobs_key(new_email): [job.to_dict() for job in jobs],
                    pending_jobs_key(new_email): pending,
                    DOCTOR_INDEX_KEY: index,
                },
                removals=[jobs_key(old_email), pending_jobs_key(old_email)],
            )
            self._events.publish(JobUpdate(UPDATE, new_email, pending))

    def rename_doctor(self, old_email: str, new_email: str) -> None:
        """Points every job that references a registered doctor at the doctor's new email."""
        if old_email == new_email:
            return
        with self._store.lock:
            index = self._load_index()
            if index is None:
                index = self._scan_index()
            refs = index.pop(doctor_key(old_email, ""), [])
            if not refs:
                return

            touched: Dict[str, List[Job]] = {}
            for technician_email, job_id in refs:
                if technician_email not in touched:
                    touched[technician_email] = self.list_all(technician_email)
                for job in touched[technician_email]:
                    if job.id == job_id:
                        job.doctor_email = new_email
            index.setdefault(doctor_key(new_email, ""), []).extend(refs)

            values = {DOCTOR_INDEX_KEY: index}
            for technician_email, jobs in touched.items():
                values[jobs_key(technician_email)] = [job.to_dict() for job in jobs]
            self._store.write(values)
            for technician_email, jobs in touched.items():
                self._events.publish(
                    JobUpdate(UPDATE, technician_email, compute_technician_stats(jobs).pending_jobs)
                )

    def rebuild_doctor_index(self) -> Dict[str, List[list]]:
        """Rebuilds the doctor index from a scan of every job partition."""
        with self._store.lock:
            index = self._scan_index()
            self._store.set(DOCTOR_INDEX_KEY, index)
        logger.info("Rebuilt doctor index with %s doctors", len(index))
        return index

    # --- Helpers ---

    def _load_index(self) -> Optional[Dict[str, List[list]]]:
        return self._store.get(DOCTOR_INDEX_KEY)

    def _scan_index(self) -> Dict[str, List[list]]:
        index: Dict[str, List[list]] = {}
        for key in self._store.enumerate_keys():
            if not key.endswith("_jobs"):
                continue
            technician_email = key[: -len("_jobs")]
            for job in self.list_all(technician_email):
                index.setdefault(doctor_key(job.doctor_email, job.doctor_name), []).append(
                    [technician_email, job.id]
                )
        return index

    @staticmethod
    def _next_id(jobs: List[Job]) -> int:
        now = int(time.time() * 1000)
        return max(now, max((job.id for job in jobs), default=0) + 1)

    def _commit(
        self,
        technician_email: str,
        jobs: List[Job],
        event_type: str,
        job_id: Optional[int] = None,
        extra: Optional[dict] = None,
    ) -> None:
        """Persists a partition, refreshes the badge count and notifies listeners."""
        pending = compute_technician_stats(jobs).pending_jobs
        values = {
            jobs_key(technician_email): [job.to_dict() for job in jobs],
            pending_jobs_key(technician_email): pending,
        }
        if extra:
            values.update(extra)
        self._store.write(values)

        event = JobUpdate(event_type, technician_email, pending, job_id)
        self._events.publish(event)
