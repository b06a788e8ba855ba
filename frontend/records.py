"""
frontend/records.py

Typed records as delivered by the live query, the option lists behind each
form select, and the client-side form validation that runs before any
write. Records are a tagged union on `kind`.
"""

from typing import Annotated, Any, Dict, List, Literal, Mapping, Union

from pydantic import BaseModel, Field, TypeAdapter

# Collections
ALERTS = "flood_alerts"
REQUESTS = "resource_requests"
OFFERS = "resource_offers"

# Form select options, in display order
ALERT_STATUSES = ("observed", "ongoing", "resolved")
SEVERITIES = ("low", "medium", "high")
URGENCIES = ("low", "medium", "high")
AVAILABILITIES = ("immediate", "within 24 hours", "within a week")


class FloodAlert(BaseModel):
    kind: Literal["alert"] = "alert"
    id: str
    location: str
    status: Literal["observed", "ongoing", "resolved"]
    severity: Literal["low", "medium", "high"]
    timestamp: str
    reported_by: str


class ResourceRequest(BaseModel):
    kind: Literal["request"] = "request"
    id: str
    item: str
    quantity: int
    location: str
    contact: str
    urgency: Literal["low", "medium", "high"]
    status: Literal["pending", "fulfilled", "cancelled"] = "pending"
    timestamp: str
    user_id: str


class ResourceOffer(BaseModel):
    kind: Literal["offer"] = "offer"
    id: str
    item: str
    quantity: int
    location: str
    contact: str
    availability: Literal["immediate", "within 24 hours", "within a week"]
    status: Literal["pending", "fulfilled", "cancelled"] = "pending"
    timestamp: str
    user_id: str


Record = Annotated[Union[FloodAlert, ResourceRequest, ResourceOffer], Field(discriminator="kind")]

_record_adapter = TypeAdapter(Record)
_snapshot_adapter = TypeAdapter(List[Record])


def parse_record(data: Mapping[str, Any]) -> Record:
    return _record_adapter.validate_python(data)


def parse_snapshot(records: List[Mapping[str, Any]]) -> List[Record]:
    """
    Parse one live-query delivery. Order is kept exactly as sent (newest first).

    Raises:
        pydantic.ValidationError: if any record is malformed
    """
    return _snapshot_adapter.validate_python(records)


def display_label(value: str) -> str:
    """'ongoing' -> 'Ongoing', 'within 24 hours' -> 'Within 24 hours'"""
    if not value:
        return value
    return value[0].upper() + value[1:]


# ------------------------------------------------------------
# Form validation
# ------------------------------------------------------------

class ValidationError(Exception):
    """A form field failed client-side validation; nothing was written."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def _required_text(form: Mapping[str, Any], field: str, label: str) -> str:
    value = form.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(field, f"{label} is required.")
    return str(value).strip()


def _choice(form: Mapping[str, Any], field: str, label: str, options) -> str:
    value = form.get(field)
    if value not in options:
        raise ValidationError(field, f"{label} must be one of: {', '.join(options)}.")
    return value


def _positive_int(form: Mapping[str, Any], field: str, label: str) -> int:
    value = form.get(field)
    if isinstance(value, bool):
        raise ValidationError(field, f"{label} must be a positive whole number.")
    if isinstance(value, int):
        number = value
    else:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValidationError(field, f"{label} is required.")
        if not text.isdecimal():
            raise ValidationError(field, f"{label} must be a positive whole number.")
        number = int(text)
    if number < 1:
        raise ValidationError(field, f"{label} must be a positive whole number.")
    return number


def validate_alert_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Returns the payload to write.

    Raises:
        ValidationError: on the first invalid field
    """
    return {
        "location": _required_text(form, "location", "Location"),
        "status": _choice(form, "status", "Status", ALERT_STATUSES),
        "severity": _choice(form, "severity", "Severity", SEVERITIES),
    }


def _validate_resource_common(form: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "item": _required_text(form, "item", "Item"),
        "quantity": _positive_int(form, "quantity", "Quantity"),
        "location": _required_text(form, "location", "Location"),
        "contact": _required_text(form, "contact", "Contact"),
    }


def validate_request_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    payload = _validate_resource_common(form)
    payload["urgency"] = _choice(form, "urgency", "Urgency", URGENCIES)
    return payload


def validate_offer_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    payload = _validate_resource_common(form)
    payload["availability"] = _choice(form, "availability", "Availability", AVAILABILITIES)
    return payload


# Initial (empty) values each form resets to after a successful write
ALERT_FORM_DEFAULTS = {"location": "", "status": "observed", "severity": "low"}
REQUEST_FORM_DEFAULTS = {"item": "", "quantity": "", "location": "", "contact": "", "urgency": "low"}
OFFER_FORM_DEFAULTS = {"item": "", "quantity": "", "location": "", "contact": "", "availability": "immediate"}
