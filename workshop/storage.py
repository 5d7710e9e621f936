# ortoist/workshop/storage.py

from __future__ import annotations

import copy
import json
import logging
import os
import threading
from typing import Any, Dict, Iterable, List, Optional

from cryptography.fernet import Fernet, InvalidToken

from workshop.config import DATA_FILE, SCHEMA_VERSION
from workshop.encryption import get_encryptor
from workshop.errors import StorageError

logger = logging.getLogger(__name__)

_MISSING = object()


class LocalStore:
    """String keys mapped to JSON values, kept in one encrypted file.

    Every write rewrites the whole file. Callers that read, modify and write
    back a value hold ``lock`` for the duration so that sessions served on
    other threads cannot interleave with them.
    """

    def __init__(self, path: str = DATA_FILE, encryptor: Optional[Fernet] = None) -> None:
        self._path = path
        self._encryptor = encryptor or get_encryptor()
        self.lock = threading.RLock()
        self._data: Dict[str, Any] = self._load_data()

    @property
    def path(self) -> str:
        return self._path

    def _load_data(self) -> Dict[str, Any]:
        try:
            with open(self._path, 'r') as f:
                encrypted_data = f.read()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Could not read data file '{self._path}': {e}") from e

        if not encrypted_data:
            return {}
        try:
            decrypted_data = self._encryptor.decrypt(encrypted_data.encode()).decode()
            payload = json.loads(decrypted_data)
        except (InvalidToken, json.JSONDecodeError) as e:
            # Corrupt or foreign file: start fresh, the next write replaces it.
            logger.warning("Could not load data file %s (%r). Starting with a new dataset.", self._path, e)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Data file %s does not hold a mapping. Starting with a new dataset.", self._path)
            return {}

        version = payload.get('schema_version')
        if version is None:
            # Files written before versioning are a bare key/value mapping.
            logger.info("Upgrading unversioned data file %s to schema %s", self._path, SCHEMA_VERSION)
            return payload
        if version > SCHEMA_VERSION:
            raise StorageError(
                f"Data file '{self._path}' uses schema {version}, newer than supported {SCHEMA_VERSION}"
            )
        return payload.get('keys', {})

    def _save_data(self) -> None:
        document = json.dumps({"schema_version": SCHEMA_VERSION, "keys": self._data}, indent=4)
        encrypted_data = self._encryptor.encrypt(document.encode())
        tmp_path = f"{self._path}.tmp"
        try:
            with open(tmp_path, 'w') as f:
                f.write(encrypted_data.decode())
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(f"Could not write data file '{self._path}': {e}") from e

    # --- Key/value contract ---

    def get(self, key: str, default: Any = None) -> Any:
        with self.lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self.write({key: value})

    def remove(self, key: str) -> None:
        self.write({}, removals=[key])

    def enumerate_keys(self) -> List[str]:
        with self.lock:
            return list(self._data.keys())

    def __contains__(self, key: object) -> bool:
        with self.lock:
            return key in self._data

    def write(self, values: Dict[str, Any], removals: Iterable[str] = ()) -> None:
        """Applies several sets and removals as one file write.

        If the file cannot be written the in-memory state is rolled back, so
        a failed write leaves no partial change behind.
        """
        encoded = {}
        for key, value in values.items():
            try:
                encoded[key] = json.loads(json.dumps(value))
            except (TypeError, ValueError) as e:
                raise StorageError(f"Value for '{key}' is not JSON serializable: {e}") from e

        with self.lock:
            previous = {key: self._data.get(key, _MISSING) for key in [*encoded, *removals]}
            self._data.update(encoded)
            for key in removals:
                self._data.pop(key, None)
            try:
                self._save_data()
            except StorageError:
                for key, old in previous.items():
                    if old is _MISSING:
                        self._data.pop(key, None)
                    else:
                        self._data[key] = old
                raise
