"""Claim and property code generation.

Codes are drawn symbol by symbol from ``[A-Z0-9]`` with the ``secrets``
module, so they carry no information about the box id or creation time.
Uniqueness is not checked here: the registry inserts the code under a UNIQUE
constraint and asks for a new one when the insert collides.
"""
import secrets
import string
from typing import Callable, Sequence

from neosafe.errors import ValidationError
from neosafe.models.safe_box import CLAIM_CODE_LENGTH, PROPERTY_CODE_LENGTH

ALPHABET = string.ascii_uppercase + string.digits


class CodeGenerator:
    """Produces uniformly distributed fixed-length codes."""

    def __init__(self, length: int, choice: Callable[[Sequence[str]], str] = secrets.choice):
        self.length = length
        self._choice = choice

    def __call__(self) -> str:
        return "".join(self._choice(ALPHABET) for _ in range(self.length))


generate_claim_code = CodeGenerator(CLAIM_CODE_LENGTH)
generate_property_code = CodeGenerator(PROPERTY_CODE_LENGTH)


def normalize_code(code: str, length: int, label: str = "Code") -> str:
    """Trim and upper-case a user-supplied code, rejecting malformed input."""
    if code is None:
        raise ValidationError(f"{label} is required")
    cleaned = code.strip().upper()
    if len(cleaned) != length:
        raise ValidationError(f"{label} must be exactly {length} characters")
    if any(ch not in ALPHABET for ch in cleaned):
        raise ValidationError(f"{label} may only contain letters A-Z and digits 0-9")
    return cleaned
