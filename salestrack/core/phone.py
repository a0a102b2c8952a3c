"""Phone number normalization utility.

Single source of truth for the number format used by call recording,
phone number lookups, and the (user_id, number) uniqueness key.
"""

from salestrack.core.exceptions import ValidationError

_SEPARATORS = " -.()/\t"


def normalize_phone(phone: str) -> str:
    """Normalize a dialed number to its stored form.

    Strips separators (spaces, dashes, dots, parentheses, slashes).
    Keeps a leading '+' and every digit, including leading zeros,
    so local mobile numbers stay intact.

    Args:
        phone: Phone number in any format

    Returns:
        Number with separators removed

    Raises:
        ValidationError: If no digits remain

    Examples:
        >>> normalize_phone("0700 111-222")
        '0700111222'
        >>> normalize_phone("+256 (700) 111.222")
        '+256700111222'
    """
    stripped = (phone or "").strip()
    plus = "+" if stripped.startswith("+") else ""
    digits = "".join(c for c in stripped if c.isdigit())
    leftovers = [c for c in stripped.lstrip("+") if not c.isdigit() and c not in _SEPARATORS]
    if leftovers:
        raise ValidationError(f"Phone number contains invalid characters: {phone!r}")
    if not digits:
        raise ValidationError(f"Phone number has no digits: {phone!r}")
    return plus + digits
