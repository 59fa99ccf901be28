"""Request domain schemas - the unified booking/consultation view model"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

BOOKING_STATUSES = ("pending", "contacted", "booked", "not-booked", "provider-requested")
CONSULTATION_STATUSES = ("pending", "reviewed")

BookingStatus = Literal["pending", "contacted", "booked", "not-booked", "provider-requested"]
ConsultationStatus = Literal["pending", "reviewed"]

# Failed uploads are stored with this URL so the submission is never lost
PLACEHOLDER_UPLOAD_PREFIX = "placeholder://upload-pending/"


def is_pending_upload(url: Optional[str]) -> bool:
    """True when a file entry never made it to storage"""
    return bool(url) and url.startswith(PLACEHOLDER_UPLOAD_PREFIX)


class ClientInfo(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""


class ConsultationFile(BaseModel):
    fieldId: str
    url: str
    name: str
    size: int = 0
    uploadPending: bool = False

    @model_validator(mode="after")
    def flag_pending_upload(self):
        self.uploadPending = is_pending_upload(self.url)
        return self


class BookingItem(BaseModel):
    """Booking request as shown in the unified queue"""

    requestType: Literal["booking"] = "booking"
    id: str
    salonId: str
    clientName: str
    clientEmail: Optional[str] = None
    clientPhone: Optional[str] = None
    service: Optional[str] = None
    stylistPreference: Optional[str] = None
    dateTimePreference: Optional[str] = None
    notes: Optional[str] = None
    waitlistOptIn: bool = False
    submittedByProvider: bool = False
    status: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ConsultationItem(BaseModel):
    """Virtual consultation submission as shown in the unified queue"""

    requestType: Literal["consultation"] = "consultation"
    id: str
    salonId: str
    clientInfo: ClientInfo
    formData: dict[str, Any] = Field(default_factory=dict)
    files: list[ConsultationFile] = Field(default_factory=list)
    status: str
    submittedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @property
    def pending_uploads(self) -> list[ConsultationFile]:
        return [f for f in self.files if f.uploadPending]


UnifiedRequest = Annotated[Union[BookingItem, ConsultationItem], Field(discriminator="requestType")]


class RequestFilter(BaseModel):
    """Dashboard filter criteria"""

    searchTerm: str = ""
    requestType: Literal["all", "bookings", "consultations"] = "all"
    status: Optional[str] = None  # None or "all" disables status filtering


class GroupedRequestsResponse(BaseModel):
    pending: list[UnifiedRequest]
    providerRequested: list[UnifiedRequest]
    contacted: list[UnifiedRequest]
    recentlyCompleted: list[UnifiedRequest]


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    # Optional compare-and-swap token: the updatedAt value the caller last saw
    expectedUpdatedAt: Optional[datetime] = None


class ConsultationStatusUpdate(BaseModel):
    status: ConsultationStatus
    expectedUpdatedAt: Optional[datetime] = None
