import gc
from datetime import date

import pytest

from workshop.context import DARK, LIGHT, PREFERENCES_KEY, THEME_KEY
from workshop.errors import ValidationError
from workshop.models import PriceListEntry
from workshop.service import WorkshopService


def test_defaults(service):
    context = service.new_context()
    assert not context.is_authenticated
    assert context.theme == LIGHT
    assert context.preferences == {"dark_mode": False, "auto_save": True}


def test_login_starts_monitor_and_logout_stops_it(service, technician, make_draft):
    context = service.new_context()
    context.login(technician)
    assert context.is_authenticated
    assert len(service.events) == 1

    service.jobs.append(technician.email, make_draft())
    assert context.monitor.snapshot.pending_jobs == 1

    context.logout()
    assert not context.is_authenticated
    assert context.monitor is None
    assert len(service.events) == 0


def test_theme_and_preferences_persist(store):
    service = WorkshopService(store=store)
    context = service.new_context()
    context.save_preferences(dark_mode=True, auto_save=False)
    assert store.get(THEME_KEY) == DARK
    assert store.get(PREFERENCES_KEY) == {"dark_mode": True, "auto_save": False}

    reloaded = WorkshopService(store=store).new_context()
    assert reloaded.theme == DARK
    assert reloaded.preferences == {"dark_mode": True, "auto_save": False}

    reloaded.set_theme(LIGHT)
    assert reloaded.preferences == {"dark_mode": False, "auto_save": False}
    assert store.get(THEME_KEY) == LIGHT
    assert store.get(PREFERENCES_KEY) == {"dark_mode": False, "auto_save": False}
    assert reloaded.auto_save is False
    with pytest.raises(ValueError):
        reloaded.set_theme("sepia")
    assert store.get(THEME_KEY) == LIGHT


def test_dropped_session_stops_listening(service, technician, doctor, make_draft):
    for user in (technician, doctor, doctor):
        context = service.new_context()
        context.login(user)
    del context
    gc.collect()

    assert len(service.events) == 0
    service.jobs.append(technician.email, make_draft(doctor_email=doctor.email))


def test_technician_email_change_moves_data(service, technician, doctor, make_draft):
    job = service.jobs.append(technician.email, make_draft(doctor_email=doctor.email))
    service.price_lists.replace(technician.email, [PriceListEntry("Bridge", "4000")])
    service.calendar.add(technician.email, date(2024, 3, 5), "note")
    context = service.new_context()
    context.login(technician)

    user = service.update_profile(context, "Ali Usta", "ali@new.com")

    assert context.current_user.email == "ali@new.com"
    assert user.email == "ali@new.com"
    assert [j.id for j in service.jobs.list_all("ali@new.com")] == [job.id]
    assert service.jobs.list_all("ali@lab.com") == []
    assert [e.type for e in service.price_lists.get("ali@new.com")] == ["Bridge"]
    assert len(service.calendar.list("ali@new.com")) == 1
    assert context.monitor.snapshot.pending_jobs == 1


def test_doctor_email_change_keeps_their_jobs(service, technician, doctor, make_draft):
    service.jobs.append(technician.email, make_draft(doctor_email=doctor.email))
    context = service.new_context()
    context.login(doctor)

    service.update_profile(context, "Dr. Demir", "demir@new.com")

    jobs = service.jobs.list_for_doctor(context.current_user)
    assert [j.doctor_email for j in jobs] == ["demir@new.com"]
    assert context.monitor.snapshot.total_jobs == 1


def test_email_change_onto_existing_partition_changes_nothing(service, technician, make_draft):
    service.jobs.append("taken@lab.com", make_draft())
    context = service.new_context()
    context.login(technician)

    with pytest.raises(ValidationError):
        service.update_profile(context, "Ali Usta", "taken@lab.com")
    assert service.accounts.get_user("ali").email == "ali@lab.com"
