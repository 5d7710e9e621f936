# ortoist/workshop/notes.py

from __future__ import annotations

from collections import Counter
from datetime import date
import logging
from typing import Dict, List

from workshop.errors import NotFoundError, ValidationError
from workshop.models import CalendarNote

logger = logging.getLogger(__name__)


def calendar_notes_key(technician_email: str) -> str:
    return f"{technician_email}_calendar_notes"


class CalendarNotes:
    """Free-text notes pinned to days of a technician's calendar."""

    def __init__(self, store) -> None:
        self._store = store

    def list(self, technician_email: str) -> List[CalendarNote]:
        return [CalendarNote.from_dict(n) for n in self._store.get(calendar_notes_key(technician_email), [])]

    def add(self, technician_email: str, day: date, text: str) -> CalendarNote:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Note text is required.")
        with self._store.lock:
            notes = self.list(technician_email)
            note = CalendarNote(note_date=day.isoformat(), text=text)
            notes.append(note)
            self._save(technician_email, notes)
        return note

    def delete(self, technician_email: str, note_id: str) -> None:
        with self._store.lock:
            notes = self.list(technician_email)
            remaining = [n for n in notes if n.id != note_id]
            if len(remaining) == len(notes):
                raise NotFoundError(f"Note {note_id} was not found.")
            self._save(technician_email, remaining)

    def for_day(self, technician_email: str, day: date) -> List[CalendarNote]:
        return [n for n in self.list(technician_email) if _note_day(n) == day]

    def counts_for_month(self, technician_email: str, year: int, month: int) -> Dict[date, int]:
        days = (_note_day(n) for n in self.list(technician_email))
        return dict(Counter(d for d in days if d and d.year == year and d.month == month))

    def rename(self, old_email: str, new_email: str) -> None:
        with self._store.lock:
            if old_email == new_email or calendar_notes_key(old_email) not in self._store:
                return
            self._store.write(
                {calendar_notes_key(new_email): self._store.get(calendar_notes_key(old_email))},
                removals=[calendar_notes_key(old_email)],
            )

    def _save(self, technician_email: str, notes: List[CalendarNote]) -> None:
        self._store.set(calendar_notes_key(technician_email), [n.to_dict() for n in notes])


def _note_day(note: CalendarNote):
    # Older notes carry a full ISO timestamp rather than a bare date.
    try:
        return date.fromisoformat(note.date[:10])
    except (TypeError, ValueError):
        logger.warning("Skipping calendar note %s with unreadable date %r", note.id, note.date)
        return None
