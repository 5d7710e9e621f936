# ortoist/workshop/stats.py

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Dict, Iterable, List, Optional

from workshop.config import CURRENCY
from workshop.events import JobEvents, JobUpdate
from workshop.models import Job, JobStatus, User

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class Stats:
    """Counts and sums derived from a set of jobs.

    ``pending_jobs`` counts unpaid jobs, whatever their status.
    """

    active_patients: int = 0
    completed_jobs: int = 0
    pending_jobs: int = 0
    total_earnings: Decimal = field(default_factory=Decimal)
    pending_payments: Decimal = field(default_factory=Decimal)
    total_jobs: int = 0


@dataclass
class DoctorStats(Stats):
    doctor_name: str = ""


def format_money(amount: Decimal, currency: str = CURRENCY) -> str:
    """Rounds to two places for display only."""
    return f"{currency}{amount.quantize(CENTS, rounding=ROUND_HALF_UP):,.2f}"


def compute_technician_stats(jobs: Iterable[Job]) -> Stats:
    jobs = list(jobs)
    unpaid = [job for job in jobs if not job.payment_received]
    paid = [job for job in jobs if job.payment_received]
    return Stats(
        active_patients=len({job.patient_name for job in unpaid}),
        completed_jobs=sum(1 for job in paid if job.status == JobStatus.COMPLETED),
        pending_jobs=len(unpaid),
        total_earnings=sum((job.amount for job in paid), Decimal()),
        pending_payments=sum((job.amount for job in unpaid), Decimal()),
        total_jobs=len(jobs),
    )


def compute_doctor_stats(jobs: Iterable[Job]) -> List[DoctorStats]:
    """Per-doctor breakdown, grouped by doctor name in first-seen order."""
    groups: Dict[str, List[Job]] = {}
    for job in jobs:
        groups.setdefault(job.doctor_name, []).append(job)

    breakdown = []
    for doctor_name, doctor_jobs in groups.items():
        stats = compute_technician_stats(doctor_jobs)
        breakdown.append(DoctorStats(doctor_name=doctor_name, **vars(stats)))
    return breakdown


def compute_cross_partition_doctor_stats(job_store, doctor: User) -> Stats:
    """Stats over every technician's jobs that reference the doctor."""
    return compute_technician_stats(job_store.list_for_doctor(doctor))


class StatsMonitor:
    """Keeps the last computed stats for one signed-in user's views.

    Recomputes on creation and whenever a relevant job update is published.
    Technicians only react to their own partition; doctors react to all,
    since any technician may log a job for them. The subscription is weak:
    a monitor nobody holds any more stops receiving updates.
    """

    def __init__(self, job_store, events: JobEvents, user: User) -> None:
        self._job_store = job_store
        self._events = events
        self.user = user
        self.snapshot = Stats()
        self.by_doctor: List[DoctorStats] = []
        self.refreshes = 0
        self.refresh()
        self._token: Optional[int] = events.subscribe(self._on_update, weak=True)

    def refresh(self) -> Stats:
        if self.user.is_doctor:
            self.snapshot = compute_cross_partition_doctor_stats(self._job_store, self.user)
        else:
            jobs = self._job_store.list_all(self.user.email)
            self.snapshot = compute_technician_stats(jobs)
            self.by_doctor = compute_doctor_stats(jobs)
        self.refreshes += 1
        return self.snapshot

    def _on_update(self, event: JobUpdate) -> None:
        if not self.user.is_doctor and event.technician_email != self.user.email:
            return
        logger.debug("Recomputing stats for %s after %s", self.user.username, event)
        self.refresh()

    def close(self) -> None:
        if self._token is not None:
            self._events.unsubscribe(self._token)
            self._token = None
