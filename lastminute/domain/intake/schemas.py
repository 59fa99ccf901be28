"""Intake schemas - public booking/consultation forms and the salon's form config"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_us_phone

FieldType = Literal["text", "email", "phone", "textarea", "select", "file"]


class ConditionalRule(BaseModel):
    triggerValue: str
    showFields: list[str] = Field(default_factory=list)


class ConsultationFormField(BaseModel):
    id: str
    type: FieldType
    label: str
    placeholder: Optional[str] = None
    required: bool = False
    options: Optional[list[str]] = None
    accept: Optional[str] = None
    order: int = 0
    conditionalRules: list[ConditionalRule] = Field(default_factory=list)
    isConditional: bool = False
    parentFieldId: Optional[str] = None


class ConsultationFormConfig(BaseModel):
    fields: list[ConsultationFormField] = Field(default_factory=list)
    successMessage: Optional[str] = None
    submitButtonText: Optional[str] = None


class ConsultationFormResponse(BaseModel):
    """Public form definition (top-level fields only, in display order)"""

    salonName: str
    fields: list[ConsultationFormField]
    successMessage: str
    submitButtonText: str


# ============================================================================
# BOOKING REQUESTS
# ============================================================================


class BookingRequestCreate(BaseModel):
    clientName: str = Field(..., min_length=1, max_length=255)
    clientEmail: Optional[str] = None
    clientPhone: str
    selectedServices: list[str] = Field(default_factory=list)
    otherService: Optional[str] = Field(None, max_length=500)
    stylistPreference: Optional[str] = Field(None, max_length=255)
    dateTimePreference: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=5000)
    waitlistOptIn: bool = False

    @field_validator("clientName")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("clientEmail")
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v) if v else None

    @field_validator("clientPhone")
    @classmethod
    def validate_phone_format(cls, v):
        if not v or not v.strip():
            if cls.model_fields["clientPhone"].is_required():
                raise ValueError("Phone number is required")
            return None
        return validate_us_phone(v)

    def service_summary(self) -> Optional[str]:
        """Selected services plus any free-text "Other: ..." entry, comma separated"""
        parts = [s.strip() for s in self.selectedServices if s and s.strip()]
        if self.otherService and self.otherService.strip():
            parts.append(f"Other: {self.otherService.strip()}")
        return ", ".join(parts) or None


class ProviderBookingCreate(BookingRequestCreate):
    """Staff may log a walk-in or phone request without a callback number"""

    clientPhone: Optional[str] = None


# ============================================================================
# CONSULTATIONS
# ============================================================================


class ConsultationFileIn(BaseModel):
    fieldId: str
    url: str
    name: str
    size: int = Field(0, ge=0)
    contentType: Optional[str] = None


class ConsultationCreate(BaseModel):
    answers: dict[str, Union[str, list[str]]] = Field(default_factory=dict)
    files: list[ConsultationFileIn] = Field(default_factory=list)


class SubmissionResponse(BaseModel):
    id: str
    requestType: Literal["booking", "consultation"]
    status: str
    message: str
