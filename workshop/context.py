# ortoist/workshop/context.py

import logging

from workshop.stats import StatsMonitor

logger = logging.getLogger(__name__)

THEME_KEY = 'theme'
PREFERENCES_KEY = 'preferences'

LIGHT = 'light'
DARK = 'dark'

DEFAULT_PREFERENCES = {'dark_mode': False, 'auto_save': True}


class AppContext:
    """Per-session state: who is signed in, the theme and preferences.

    ``load`` reads the persisted theme and preferences; ``logout`` clears the
    session user and stops its stats monitor.
    """

    def __init__(self, service):
        self._service = service
        self.current_user = None
        self.monitor = None
        self.theme = LIGHT
        self.preferences = dict(DEFAULT_PREFERENCES)

    @property
    def is_authenticated(self):
        return self.current_user is not None

    def load(self):
        store = self._service.store
        self.theme = store.get(THEME_KEY, LIGHT)
        saved = store.get(PREFERENCES_KEY) or {}
        self.preferences = {**DEFAULT_PREFERENCES, **saved}
        self.preferences['dark_mode'] = self.theme == DARK
        return self

    def login(self, user):
        self.logout()
        self.current_user = user
        self.monitor = StatsMonitor(self._service.jobs, self._service.events, user)

    def logout(self):
        if self.monitor is not None:
            self.monitor.close()
            self.monitor = None
        self.current_user = None

    def refresh_user(self, user):
        """Swaps in an updated profile of the signed-in user."""
        if self.current_user and self.current_user.username == user.username:
            self.login(user)

    @property
    def auto_save(self):
        """Whether uploads are stored as soon as they are chosen."""
        return bool(self.preferences.get('auto_save', True))

    def set_theme(self, theme):
        if theme not in (LIGHT, DARK):
            raise ValueError(f"Unknown theme '{theme}'")
        self.save_preferences(theme == DARK, self.auto_save)

    def save_preferences(self, dark_mode, auto_save):
        preferences = {'dark_mode': bool(dark_mode), 'auto_save': bool(auto_save)}
        theme = DARK if dark_mode else LIGHT
        self._service.store.write({PREFERENCES_KEY: preferences, THEME_KEY: theme})
        self.preferences = preferences
        self.theme = theme
        logger.info("Saved preferences %s", self.preferences)
