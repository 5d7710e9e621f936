from datetime import date

import pytest

from workshop.errors import NotFoundError, ValidationError
from workshop.notes import calendar_notes_key

EMAIL = "ali@lab.com"


def test_add_and_list_for_day(service):
    note = service.calendar.add(EMAIL, date(2024, 3, 5), "  Pick up impressions  ")
    service.calendar.add(EMAIL, date(2024, 3, 6), "Order zirconia")

    assert note.text == "Pick up impressions"
    assert [n.id for n in service.calendar.for_day(EMAIL, date(2024, 3, 5))] == [note.id]
    assert len(service.calendar.list(EMAIL)) == 2


def test_empty_note_is_rejected(service):
    with pytest.raises(ValidationError):
        service.calendar.add(EMAIL, date(2024, 3, 5), "   ")
    assert service.calendar.list(EMAIL) == []


def test_delete(service):
    note = service.calendar.add(EMAIL, date(2024, 3, 5), "Call Dr. Demir")
    service.calendar.delete(EMAIL, note.id)
    assert service.calendar.list(EMAIL) == []
    with pytest.raises(NotFoundError):
        service.calendar.delete(EMAIL, note.id)


def test_counts_for_month(service):
    service.calendar.add(EMAIL, date(2024, 3, 5), "a")
    service.calendar.add(EMAIL, date(2024, 3, 5), "b")
    service.calendar.add(EMAIL, date(2024, 3, 20), "c")
    service.calendar.add(EMAIL, date(2024, 4, 1), "d")

    assert service.calendar.counts_for_month(EMAIL, 2024, 3) == {date(2024, 3, 5): 2, date(2024, 3, 20): 1}


def test_timestamped_and_broken_dates(service):
    service.store.set(calendar_notes_key(EMAIL), [
        {"id": "1", "date": "2024-03-05T09:30:00.000Z", "text": "old style"},
        {"id": "2", "date": "someday", "text": "broken"},
    ])
    assert [n.id for n in service.calendar.for_day(EMAIL, date(2024, 3, 5))] == ["1"]
    assert service.calendar.counts_for_month(EMAIL, 2024, 3) == {date(2024, 3, 5): 1}


def test_notes_are_per_technician(service):
    service.calendar.add(EMAIL, date(2024, 3, 5), "mine")
    assert service.calendar.list("veli@lab.com") == []
