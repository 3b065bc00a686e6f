"""Record id generation.

An id is the base36 millisecond timestamp followed by random base36
characters, so ids of records created in different milliseconds sort in
creation order.
"""

import secrets
import string

from deploy_engine.utils.clock import epoch_millis

BASE36_ALPHABET = string.digits + string.ascii_lowercase
RECORD_ID_LENGTH = 16


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError(f"Cannot encode negative number {number} in base36")
    digits = []
    while True:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
        if not number:
            return "".join(reversed(digits))


def generate_short_id(length: int = RECORD_ID_LENGTH) -> str:
    """Timestamp-first id of exactly ``length`` characters."""
    stamp = to_base36(epoch_millis())
    filler = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(max(length - len(stamp), 0)))
    return (stamp + filler)[:length]


def new_record_id(prefix: str = "") -> str:
    """Return a new record id such as ``dep_<id>`` or ``snap_<id>``."""
    return f"{prefix}{generate_short_id()}"
