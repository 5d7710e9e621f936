# ortoist/workshop/auth.py

import hashlib
import logging
import os
import re

from workshop.errors import NotFoundError, ValidationError
from workshop.models import Role, User

logger = logging.getLogger(__name__)

USERS_KEY = 'users'

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


def hash_password(password, salt=None):
    salt = salt or os.urandom(16).hex()
    password_to_hash = salt + password
    return salt, hashlib.sha256(password_to_hash.encode()).hexdigest()


def _check_profile(full_name, email):
    if not full_name or not email:
        raise ValidationError("Please fill in all fields.")
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email address.")


class AccountService:
    """Technician and doctor accounts kept under the global ``users`` key."""

    def __init__(self, store):
        self._store = store

    def _load_users(self):
        return [User.from_dict(u) for u in self._store.get(USERS_KEY, [])]

    def _save_users(self, users):
        self._store.set(USERS_KEY, [u.to_dict() for u in users])

    def register(self, username, password, confirm_password, full_name, email, role):
        username = (username or "").strip()
        full_name = (full_name or "").strip()
        email = (email or "").strip()
        if not username or not password or not confirm_password:
            raise ValidationError("Please fill in all fields.")
        _check_profile(full_name, email)
        if password != confirm_password:
            raise ValidationError("Passwords do not match.")
        try:
            role = Role(role)
        except ValueError as e:
            raise ValidationError(f"Unknown role '{role}'.") from e

        with self._store.lock:
            users = self._load_users()
            if any(u.username == username for u in users):
                raise ValidationError("This username is already taken.")
            if any(u.email == email for u in users):
                raise ValidationError("An account with this email already exists.")

            salt, password_hash = hash_password(password)
            user = User(
                username=username,
                password_hash=password_hash,
                salt=salt,
                full_name=full_name,
                email=email,
                role=role,
            )
            users.append(user)
            self._save_users(users)
        logger.info("Registered %s account %s", role.value, username)
        return user

    def login(self, username, password):
        user = self.get_user(username)
        if user and user.salt:
            _, hash_to_check = hash_password(password or "", user.salt)
            if user.password_hash == hash_to_check:
                logger.info("User %s logged in", username)
                return user
        logger.info("Failed login for %s", username)
        return None

    def get_user(self, username):
        return next((u for u in self._load_users() if u.username == username), None)

    def list_users(self, exclude_username=None):
        """Every registered account except ``exclude_username``, in sign-up order."""
        return [u for u in self._load_users() if u.username != exclude_username]

    def get_doctors(self):
        return [u for u in self._load_users() if u.role == Role.DOCTOR]

    def find_doctor(self, email):
        """Returns the registered doctor with this email, if any."""
        return next((u for u in self.get_doctors() if u.email == email), None)

    def update_profile(self, username, full_name, email):
        """Updates name and email. Returns the user as it was before and after."""
        full_name = (full_name or "").strip()
        email = (email or "").strip()
        _check_profile(full_name, email)

        with self._store.lock:
            users = self._load_users()
            user = next((u for u in users if u.username == username), None)
            if user is None:
                raise NotFoundError(f"User '{username}' was not found.")
            if any(u.email == email and u.username != username for u in users):
                raise ValidationError("An account with this email already exists.")

            before = User.from_dict(user.to_dict())
            user.full_name = full_name
            user.email = email
            self._save_users(users)

        logger.info("Updated profile of %s", username)
        return before, user
