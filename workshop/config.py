# ortoist/workshop/config.py

import os

DATA_FILE = os.getenv("ORTOIST_DATA_FILE", "records.json")
KEY_FILE = os.getenv("ORTOIST_KEY_FILE", "secret.key")
LOG_LEVEL = os.getenv("ORTOIST_LOG_LEVEL", "INFO")
CURRENCY = os.getenv("ORTOIST_CURRENCY", "₺")

# Bumped whenever the layout of stored values changes.
SCHEMA_VERSION = 1
