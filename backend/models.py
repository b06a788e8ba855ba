from pydantic import BaseModel, Field
from typing import Annotated, Literal, Union
from enum import Enum


# Enums
class AlertStatus(str, Enum):
    observed = "observed"
    ongoing = "ongoing"
    resolved = "resolved"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Urgency(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Availability(str, Enum):
    immediate = "immediate"
    within_24_hours = "within 24 hours"
    within_a_week = "within a week"


class LifecycleStatus(str, Enum):
    pending = "pending"
    fulfilled = "fulfilled"
    cancelled = "cancelled"


class RecordKind(str, Enum):
    alert = "alert"
    request = "request"
    offer = "offer"


# Collection name -> record kind
COLLECTIONS = {
    "flood_alerts": RecordKind.alert,
    "resource_requests": RecordKind.request,
    "resource_offers": RecordKind.offer,
}

# Column holding the creator's identity, per kind
OWNER_FIELD = {
    RecordKind.alert: "reported_by",
    RecordKind.request: "user_id",
    RecordKind.offer: "user_id",
}


# Models
class FloodAlert(BaseModel):
    kind: Literal["alert"] = "alert"
    id: str
    location: str
    status: AlertStatus
    severity: Severity
    timestamp: str
    reported_by: str


class ResourceRequest(BaseModel):
    kind: Literal["request"] = "request"
    id: str
    item: str
    quantity: int
    location: str
    contact: str
    urgency: Urgency
    status: LifecycleStatus = LifecycleStatus.pending
    timestamp: str
    user_id: str


class ResourceOffer(BaseModel):
    kind: Literal["offer"] = "offer"
    id: str
    item: str
    quantity: int
    location: str
    contact: str
    availability: Availability
    status: LifecycleStatus = LifecycleStatus.pending
    timestamp: str
    user_id: str


Record = Annotated[Union[FloodAlert, ResourceRequest, ResourceOffer], Field(discriminator="kind")]

RECORD_MODELS = {
    RecordKind.alert: FloodAlert,
    RecordKind.request: ResourceRequest,
    RecordKind.offer: ResourceOffer,
}
