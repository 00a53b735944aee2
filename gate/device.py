"""Device identity: an opaque, locally persisted correlation token."""

import secrets
import string
import time
from typing import Callable, Optional

from gate.storage import DEVICE_ID_KEY, LocalStore

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_device_id(now_millis: Optional[int] = None) -> str:
    """
    New device identifier: 'device_' + 9 random base-36 chars + base-36 ms timestamp.

    Not a credential; only needs to be collision resistant in practice.
    """
    millis = now_millis if now_millis is not None else int(time.time() * 1000)
    random_part = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(9))
    return f"device_{random_part}{to_base36(millis)}"


class DeviceIdentityProvider:
    """Returns the stored device identifier, creating it on first use."""

    def __init__(self, store: LocalStore, generator: Callable[[], str] = generate_device_id):
        self.store = store
        self.generator = generator

    def get_device_id(self) -> str:
        device_id = self.store.get_item(DEVICE_ID_KEY)
        if device_id:
            return device_id
        device_id = self.generator()
        self.store.set_item(DEVICE_ID_KEY, device_id)
        return device_id

    def clear(self) -> None:
        # only called through SessionLifecycleManager.clear_session()
        self.store.remove_item(DEVICE_ID_KEY)
