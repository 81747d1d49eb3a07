# models.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional

"""Data models for power commands and device replies."""


class Command(str, Enum):
    STATUS = "status"
    ON = "on"
    OFF = "off"

    @property
    def coap_suffix(self) -> str:
        return COAP_SUFFIXES[self]


COAP_SUFFIXES = {
    Command.ON: "pwr_on",
    Command.OFF: "pwr_off",
    Command.STATUS: "pwr_get_t",
}


class PowerState(str, Enum):
    ON = "ON"
    OFF = "OFF"


class PowerStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: PowerState = Field(..., json_schema_extra={"example": "ON"})
    last_change: Optional[str] = Field(default=None, json_schema_extra={"example": "2023-11-14 22:13:20 UTC"})

    def describe(self) -> str:
        """One-line status as shown to the HTTP caller."""
        return f"Power {self.state.value}, last change: {self.last_change or '(none)'}"


class HealthResponse(BaseModel):
    application_status: str = Field(..., json_schema_extra={"example": "healthy"})
    coap_url: str = Field(..., json_schema_extra={"example": "coap://127.0.0.1/"})
    timestamp: datetime
