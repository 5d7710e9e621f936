# ortoist/workshop/encryption.py

import logging

from cryptography.fernet import Fernet

from workshop.config import KEY_FILE

logger = logging.getLogger(__name__)


def write_key(path=KEY_FILE):
    """Generates a key and saves it into a file."""
    key = Fernet.generate_key()
    with open(path, "wb") as key_file:
        key_file.write(key)
    logger.info("Generated a new encryption key at %s", path)
    return key


def load_key(path=KEY_FILE):
    """Loads the key from disk."""
    with open(path, "rb") as key_file:
        return key_file.read()


def get_encryptor(path=KEY_FILE):
    """Returns a Fernet encryptor, creating the key file on first use."""
    try:
        key = load_key(path)
    except FileNotFoundError:
        key = write_key(path)
    return Fernet(key)


if __name__ == '__main__':
    get_encryptor()
    print(f"Encryption key is available at '{KEY_FILE}'.")
