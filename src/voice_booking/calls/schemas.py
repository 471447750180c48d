"""
Request/response schemas for the call control API (camelCase on the wire).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voice_booking.calls.models import DEFAULT_SALON_NAME, BookingRequest
from voice_booking.shared.exceptions import ValidationError

REQUIRED_FIELDS = ("hairdresserPhone", "customerName", "service")


class CallCreateRequest(BaseModel):
    """Body of ``POST /api/call``.

    Every field is optional at the schema level so that missing required
    fields are reported with one 400 instead of a per-field 422.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    customer_name: str | None = Field(default=None, alias="customerName")
    hairdresser_phone: str | None = Field(default=None, alias="hairdresserPhone")
    hairdresser_name: str | None = Field(default=None, alias="hairdresserName")
    service: str | None = None
    preferred_date: str | None = Field(default=None, alias="preferredDate")
    preferred_time: str | None = Field(default=None, alias="preferredTime")

    def to_booking(self) -> BookingRequest:
        """Validate required fields and build the domain booking request.

        Raises:
            ValidationError: If customerName, hairdresserPhone or service is blank.
        """
        values = {
            "hairdresserPhone": self.hairdresser_phone,
            "customerName": self.customer_name,
            "service": self.service,
        }
        missing = [name for name in REQUIRED_FIELDS if not values[name]]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        return BookingRequest(
            customer_name=self.customer_name or "",
            service=self.service or "",
            salon_phone=self.hairdresser_phone or "",
            salon_name=self.hairdresser_name or DEFAULT_SALON_NAME,
            preferred_date=self.preferred_date or "",
            preferred_time=self.preferred_time or "",
        )


class CallCreatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    call_sid: str = Field(alias="callSid")
    status: str = "calling"


class TranscriptEntry(BaseModel):
    role: str
    content: str


class CallStatusResponse(BaseModel):
    """Polling view of a call session."""

    model_config = ConfigDict(populate_by_name=True)

    call_sid: str = Field(alias="callSid")
    status: str
    twilio_status: str = Field(alias="twilioStatus")
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    appointment_result: dict[str, Any] | None = Field(default=None, alias="appointmentResult")

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> CallStatusResponse:
        return cls(
            call_sid=snapshot["call_id"],
            status=snapshot["status"],
            twilio_status=snapshot["carrier_status"],
            transcript=[TranscriptEntry(**entry) for entry in snapshot["transcript"]],
            appointment_result=snapshot["outcome"],
        )
