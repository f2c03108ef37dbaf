"""Entity identifiers: a type prefix plus 128 random bits."""

import re
import time
import uuid

from zennote.errors import InvalidIdentifier

FOLDER_PREFIX = "f-"
NOTE_PREFIX = "n-"

_FOLDER_ID_RE = re.compile(r"f-[0-9a-f]{32}")
_NOTE_ID_RE = re.compile(r"n-[0-9a-f]{32}")


def new_folder_id() -> str:
    return f"{FOLDER_PREFIX}{uuid.uuid4().hex}"


def new_note_id() -> str:
    return f"{NOTE_PREFIX}{uuid.uuid4().hex}"


def is_folder_id(value: object) -> bool:
    return isinstance(value, str) and _FOLDER_ID_RE.fullmatch(value) is not None


def is_note_id(value: object) -> bool:
    return isinstance(value, str) and _NOTE_ID_RE.fullmatch(value) is not None


def parse_note_id(value: object) -> str:
    """Validate a dropped/transferred identifier before it is used as a note id."""
    if isinstance(value, str):
        value = value.strip()
    if not is_note_id(value):
        raise InvalidIdentifier(value)
    return value


def now_ms() -> int:
    return int(time.time() * 1000)
