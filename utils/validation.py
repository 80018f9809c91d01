import re
from typing import Iterable, List, Tuple

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE = re.compile(r"^[\d+\-\s()]+$")
_NON_DIGIT = re.compile(r"\D")

MAX_EMAIL_LEN = 255


def _blank(value) -> bool:
    return not isinstance(value, str) or len(value.strip()) == 0


def validate_email(email) -> bool:
    return isinstance(email, str) and len(email) <= MAX_EMAIL_LEN and bool(_EMAIL.match(email))


def validate_amount(amount) -> bool:
    """Positive, finite number. Accepts numeric strings like "1,200.50"."""
    if isinstance(amount, bool):
        return False
    if isinstance(amount, str):
        amount = amount.replace(",", "").strip()
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return False
    return value > 0 and value != float("inf")


def validate_phone(phone) -> bool:
    # Phone is optional
    if phone is None or (isinstance(phone, str) and not phone.strip()):
        return True
    if not isinstance(phone, str):
        return False
    return bool(_PHONE.match(phone)) and len(_NON_DIGIT.sub("", phone)) >= 10


def validate_file_size(size_bytes: int, max_size_mb: int = 10) -> bool:
    return 0 <= size_bytes <= max_size_mb * 1024 * 1024


def validate_file_type(mimetype: str, allowed_types: Iterable[str]) -> bool:
    """Exact match, or a wildcard like "image/*" matching on the major type."""
    if not mimetype:
        return False
    major = mimetype.split("/")[0]
    for allowed in allowed_types:
        if allowed == mimetype:
            return True
        if allowed.endswith("/*") and allowed.split("/")[0] == major:
            return True
    return False


def file_size_display(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.2f} KB"
    return f"{size_bytes / (1024 * 1024):.2f} MB"


def validate_fraud_report(data: dict) -> Tuple[bool, List[str]]:
    errors: List[str] = []

    if _blank(data.get("fullName")):
        errors.append("Full name is required")
    if not validate_email(data.get("contactEmail")):
        errors.append("Valid email address is required")
    if not validate_phone(data.get("contactPhone")):
        errors.append("Phone number is invalid")
    if _blank(data.get("scamType")):
        errors.append("Scam type is required")
    if not data.get("amount") or not validate_amount(data.get("amount")):
        errors.append("Valid amount is required")
    if _blank(data.get("currency")):
        errors.append("Currency is required")
    if _blank(data.get("timeline")):
        errors.append("Timeline is required")
    if _blank(data.get("description")):
        errors.append("Description is required")

    if not (data.get("transactionHashes") or data.get("bankReferences")):
        errors.append("At least one transaction hash or bank reference is required")

    return (len(errors) == 0), errors


def validate_contact_form(data: dict) -> Tuple[bool, List[str]]:
    errors: List[str] = []

    if _blank(data.get("name")):
        errors.append("Name is required")
    if not validate_email(data.get("email")):
        errors.append("Valid email address is required")
    if _blank(data.get("subject")):
        errors.append("Subject is required")
    if _blank(data.get("message")):
        errors.append("Message is required")

    return (len(errors) == 0), errors


def string_list(value) -> List[str]:
    """Keeps the non-blank strings of a JSON list; anything else becomes []."""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]
