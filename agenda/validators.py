"""Contact validation for public bookings.

Customers leave either an e-mail address or a Brazilian (WhatsApp) phone
number in a single contact field.
"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Enter a valid email address (e.g. name@example.com).")

    return email


def validate_br_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a Brazilian phone number and normalize it to digits with country code.

    Accepts (11) 99999-9999, 11 99999-9999, 11999999999 and +55 11 99999-9999.

    Returns:
        Normalized number such as ``5511999999999``

    Raises:
        ValueError: If the number is not a valid DDD + 8/9 digit number
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)
    if len(digits) < 10 or len(digits) > 13:
        raise ValueError("Enter a valid phone number (e.g. (11) 99999-9999).")

    national = digits[2:] if digits.startswith("55") and len(digits) > 11 else digits

    ddd = int(national[:2])
    if ddd < 11 or ddd > 99 or len(national) not in (10, 11):
        raise ValueError("Enter a valid phone number (e.g. (11) 99999-9999).")

    return f"55{national}"


def format_br_phone(phone: str) -> str:
    """Format a phone number for display, e.g. ``(11) 99999-9999``."""
    if not phone:
        return ""

    digits = re.sub(r"\D", "", phone)
    national = digits[2:] if digits.startswith("55") and len(digits) > 11 else digits

    if len(national) == 10:
        return f"({national[:2]}) {national[2:6]}-{national[6:]}"
    if len(national) == 11:
        return f"({national[:2]}) {national[2:7]}-{national[7:]}"
    return phone


def validate_contact(contact: Optional[str]) -> str:
    """Validate a contact that is either an e-mail or a phone number."""
    value = (contact or "").strip()
    if not value:
        raise ValueError("Contact is required.")

    if "@" in value:
        return validate_email(value)
    return validate_br_phone(value)
