# ortoist/workshop/service.py

import logging

from workshop.auth import AccountService
from workshop.config import DATA_FILE
from workshop.context import AppContext
from workshop.errors import ValidationError
from workshop.events import JobEvents
from workshop.jobs import JobStore
from workshop.notes import CalendarNotes
from workshop.pricelist import PriceListService
from workshop.storage import LocalStore

logger = logging.getLogger(__name__)


class WorkshopService:
    """Wires the store, the event bus and every service the pages use."""

    def __init__(self, store=None, path=DATA_FILE, encryptor=None):
        self.store = store or LocalStore(path, encryptor)
        self.events = JobEvents()
        self.accounts = AccountService(self.store)
        self.jobs = JobStore(self.store, self.events, doctor_lookup=self.accounts.find_doctor)
        self.price_lists = PriceListService(self.store)
        self.calendar = CalendarNotes(self.store)

    def new_context(self):
        return AppContext(self).load()

    def update_profile(self, context, full_name, email):
        """Updates the signed-in user's profile and moves their data if the email changed."""
        user = context.current_user
        new_email = (email or "").strip()
        if new_email != user.email and not user.is_doctor and self.jobs.has_partition(new_email):
            raise ValidationError(f"Jobs already exist for {new_email}.")
        before, after = self.accounts.update_profile(user.username, full_name, email)
        if before.email != after.email:
            logger.info("Moving data of %s from %s to %s", after.username, before.email, after.email)
            if after.is_doctor:
                self.jobs.rename_doctor(before.email, after.email)
            else:
                self.jobs.rename_technician(before.email, after.email)
                self.price_lists.rename(before.email, after.email)
                self.calendar.rename(before.email, after.email)
        context.refresh_user(after)
        return after
