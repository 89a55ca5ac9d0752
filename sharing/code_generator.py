import random
import re
import string

from sharing.errors import InvalidShareCode

CODE_CHARS = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_CUSTOM_LENGTH = 20

_NOT_CODE_CHAR = re.compile(r"[^A-Z0-9]")
_rng = random.SystemRandom()


def generate(length: int = CODE_LENGTH) -> str:
    """Return a random uppercase alphanumeric share code."""
    return "".join(_rng.choices(CODE_CHARS, k=length))


def normalize(code: str) -> str:
    """Canonical lookup form of a code typed by a user."""
    return _NOT_CODE_CHAR.sub("", code.strip().upper())


def validate_custom(candidate: str) -> str:
    """Normalize a caller-chosen code; raise InvalidShareCode if nothing usable is left."""
    code = normalize(candidate or "")[:MAX_CUSTOM_LENGTH]
    if not code:
        raise InvalidShareCode("Custom share code must contain letters or digits")
    return code
