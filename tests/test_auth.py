import pytest

from workshop.auth import USERS_KEY, hash_password
from workshop.errors import NotFoundError, ValidationError
from workshop.models import Role


def test_register_and_login(service, technician):
    assert technician.role == Role.TECHNICIAN
    user = service.accounts.login("ali", "secret")
    assert user.email == "ali@lab.com"
    assert service.accounts.login("ali", "wrong") is None
    assert service.accounts.login("nobody", "secret") is None


def test_password_is_salted(service, technician):
    stored = service.store.get(USERS_KEY)[0]
    assert "secret" not in stored.values()
    assert hash_password("secret", stored["salt"]) == (stored["salt"], stored["password_hash"])
    assert hash_password("secret")[1] != stored["password_hash"]


@pytest.mark.parametrize("args", [
    ("", "pw", "pw", "Name", "a@b.com", "technician"),
    ("u", "pw", "other", "Name", "a@b.com", "technician"),
    ("u", "pw", "pw", "", "a@b.com", "technician"),
    ("u", "pw", "pw", "Name", "not-an-email", "technician"),
    ("u", "pw", "pw", "Name", "a@b.com", "nurse"),
])
def test_register_rejects_bad_input(service, args):
    with pytest.raises(ValidationError):
        service.accounts.register(*args)
    assert service.store.get(USERS_KEY) is None


def test_register_rejects_duplicates(service, technician):
    with pytest.raises(ValidationError):
        service.accounts.register("ali", "pw", "pw", "Other", "other@lab.com", "technician")
    with pytest.raises(ValidationError):
        service.accounts.register("other", "pw", "pw", "Other", "ali@lab.com", "doctor")


def test_doctor_lookup(service, technician, doctor):
    assert [u.username for u in service.accounts.get_doctors()] == ["demir"]
    assert service.accounts.find_doctor("d@x.com").full_name == "Dr. Demir"
    assert service.accounts.find_doctor("ali@lab.com") is None


def test_update_profile(service, technician):
    before, after = service.accounts.update_profile("ali", "Ali Usta Jr.", "ali@new.com")
    assert before.email == "ali@lab.com"
    assert after.full_name == "Ali Usta Jr."
    assert service.accounts.get_user("ali").email == "ali@new.com"
    assert service.accounts.login("ali", "secret") is not None


def test_update_profile_errors(service, technician, doctor):
    with pytest.raises(NotFoundError):
        service.accounts.update_profile("ghost", "Ghost", "g@x.com")
    with pytest.raises(ValidationError):
        service.accounts.update_profile("ali", "Ali", "d@x.com")
    with pytest.raises(ValidationError):
        service.accounts.update_profile("ali", "", "ali@lab.com")


def test_list_users_skips_the_viewer(service, technician, doctor):
    assert [u.username for u in service.accounts.list_users()] == ["ali", "demir"]
    others = service.accounts.list_users(exclude_username="ali")
    assert [(u.username, u.role) for u in others] == [("demir", Role.DOCTOR)]
    assert others[0].created_at
