from typing import Any, Dict, List, Optional


class InvalidEmailError(ValueError):
    """Raised for an email that has no usable local/domain structure."""
    pass


def normalize_email(email: str) -> str:
    return email.strip()


def validate_email(email: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Only structural checks; deliverability is not our concern.
    """
    if not isinstance(email, str):
        return ["Email must be a string"]

    errors: List[str] = []
    value = normalize_email(email)
    if not value:
        return ["Email must be a non-empty string"]
    if any(ch.isspace() for ch in value):
        errors.append("Email must not contain whitespace")

    if value.count("@") != 1:
        errors.append("Email must contain exactly one '@'")
        return errors

    local, domain = value.split("@", 1)
    if not local:
        errors.append("Email local part is empty")
    if not domain:
        errors.append("Email domain part is empty")
    return errors


def split_email(email: str) -> tuple:
    """Return (local, domain) or raise InvalidEmailError."""
    errors = validate_email(email)
    if errors:
        raise InvalidEmailError("; ".join(errors))
    local, domain = normalize_email(email).split("@", 1)
    return local, domain


def validate_batch_request(payload: Any) -> List[str]:
    """Validate the shape of a batch request: {"emails": [...], "apolloKey": str?}."""
    if not isinstance(payload, dict):
        return ["Request body must be a JSON object"]

    errors: List[str] = []
    emails = payload.get("emails")
    if emails is None:
        errors.append("Missing required field: emails")
    elif not isinstance(emails, list):
        errors.append("Field 'emails' must be a list")
    elif not all(isinstance(e, str) for e in emails):
        errors.append("Field 'emails' must contain only strings")

    key = payload.get("apolloKey")
    if key is not None and not isinstance(key, str):
        errors.append("Field 'apolloKey' must be a string if provided")
    return errors


def batch_request(emails: List[str], api_key: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"emails": emails}
    if api_key:
        payload["apolloKey"] = api_key
    return payload
