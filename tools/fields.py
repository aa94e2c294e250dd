from typing import Any, Dict, Iterable, Optional

EMAIL_ALIASES = ("email", "e-mail", "work_email", "official_email")


def extract_email(fields: Optional[Iterable[Dict[str, Any]]]) -> Optional[str]:
    """
    Pull the email address out of Facebook lead form fields.

    Form builders name the field freely ("Work Email", "contact_email_2",
    "E-mail"), so the first field whose lowercased name contains one of
    EMAIL_ALIASES wins, in the order the form returned them.

    Args:
        fields: Lead ``field_data`` entries, each ``{"name": ..., "values": [...]}``

    Returns:
        First value of the matching field, or None
    """
    for field in fields or []:
        if not isinstance(field, dict):
            continue
        name = field.get("name")
        if not isinstance(name, str):
            continue

        lowered = name.lower()
        if not any(alias in lowered for alias in EMAIL_ALIASES):
            continue

        # First matching field decides, even when it has no value
        values = field.get("values")
        if not isinstance(values, (list, tuple)) or not values or not isinstance(values[0], str):
            return None
        email = values[0].strip()
        return email or None

    return None
