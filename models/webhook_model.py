from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from utils.time_utils import parse_event_time


class EntryEvent(BaseModel):
    license_plate: str = Field(..., min_length=1)
    entry_time: datetime
    event_type: Literal["ENTRY"] = "ENTRY"

    @field_validator("entry_time", mode="before")
    @classmethod
    def validate_entry_time(cls, v):
        return parse_event_time(v)


class ParkedEvent(BaseModel):
    license_plate: str = Field(..., min_length=1)
    lat: float
    lng: float
    event_type: Literal["PARKED"] = "PARKED"


class ExitEvent(BaseModel):
    license_plate: str = Field(..., min_length=1)
    exit_time: datetime
    event_type: Literal["EXIT"] = "EXIT"

    @field_validator("exit_time", mode="before")
    @classmethod
    def validate_exit_time(cls, v):
        return parse_event_time(v)
