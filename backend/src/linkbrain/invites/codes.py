"""Invite code generation and format checks."""

import re
import secrets

# Uppercase letters and digits without the look-alikes I, O, 0 and 1
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PREFIX = "LB"
CODE_LENGTH = 6

CODE_PATTERN = re.compile(rf"^{CODE_PREFIX}-[A-Z2-9]{{{CODE_LENGTH}}}$")


def generate_invite_code() -> str:
    """Generate a human-typeable invite code.

    Format: LB-XXXXXX, with each symbol drawn from CODE_ALPHABET by a
    cryptographically secure source.
    """
    body = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"{CODE_PREFIX}-{body}"


def normalize_code(code: str) -> str:
    """Upper-case a user-entered code."""
    return code.upper()


def is_valid_code_format(code: object) -> bool:
    """Check that ``code`` is a string in invite code format, ignoring case."""
    if not isinstance(code, str) or not code:
        return False
    return CODE_PATTERN.fullmatch(normalize_code(code)) is not None
