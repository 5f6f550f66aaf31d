from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .utils import format_timestamp, parse_timestamp

SESSION_ACTIVE = "active"
SESSION_COMPLETED = "completed"
SESSION_PAUSED = "paused"

MEETING_IN_PROGRESS = "in-progress"
MEETING_COMPLETED = "completed"
MEETING_CANCELLED = "cancelled"


class CamelModel(BaseModel):
    """Base for records that travel as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class LocationSample(CamelModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    address: str = ""
    timestamp: str
    accuracy: Optional[float] = None


class CustomerContact(CamelModel):
    customer_name: str
    customer_employee_name: str
    customer_email: Optional[str] = None
    customer_mobile: Optional[str] = None
    customer_designation: Optional[str] = None
    customer_department: Optional[str] = None


class MeetingDetails(CamelModel):
    discussion: Optional[str] = None
    customers: List[CustomerContact] = Field(default_factory=list)
    # Single-contact fields sent by older dashboard builds.
    customer_name: Optional[str] = None
    customer_employee_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_mobile: Optional[str] = None
    customer_designation: Optional[str] = None
    customer_department: Optional[str] = None

    def has_legacy_contact(self) -> bool:
        return bool(self.customer_name) and bool(self.customer_employee_name)

    def with_legacy_contact(self) -> "MeetingDetails":
        """Return a copy whose ``customers`` holds the legacy single contact."""
        contact = CustomerContact(
            customer_name=self.customer_name or "",
            customer_employee_name=self.customer_employee_name or "",
            customer_email=self.customer_email or "",
            customer_mobile=self.customer_mobile or "",
            customer_designation=self.customer_designation or "",
            customer_department=self.customer_department or "",
        )
        return self.model_copy(update={"customers": [contact]})


class TrackingSession(CamelModel):
    id: str
    employee_id: str
    start_time: str
    start_location: LocationSample
    route: List[LocationSample]
    total_distance: float = 0.0
    status: str = SESSION_ACTIVE
    end_time: Optional[str] = None
    duration: Optional[int] = None

    def mark_completed(self, now: dt.datetime) -> None:
        if self.end_time:
            return
        self.end_time = format_timestamp(now)
        started = parse_timestamp(self.start_time)
        ended = parse_timestamp(self.end_time)
        if started is not None and ended is not None:
            self.duration = math.floor((ended - started).total_seconds())


class MeetingLog(CamelModel):
    id: str
    employee_id: str
    location: LocationSample
    start_time: str
    client_name: Optional[str] = None
    notes: Optional[str] = None
    status: str = MEETING_IN_PROGRESS
    end_time: Optional[str] = None
    lead_id: Optional[str] = None
    lead_info: Optional[Dict[str, Any]] = None
    meeting_details: Optional[MeetingDetails] = None

    def mark_completed(self, now: dt.datetime) -> None:
        if self.end_time:
            return
        self.end_time = format_timestamp(now)


class MeetingHistoryEntry(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    employee_id: str
    meeting_details: MeetingDetails
    timestamp: str
    lead_id: Optional[str] = None
    lead_info: Optional[Dict[str, Any]] = None


class EmployeePresence(CamelModel):
    status: str = "active"
    location: LocationSample
    last_update: str
    current_task: Optional[str] = None


class Employee(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str
    location: LocationSample
    last_update: str
    current_task: Optional[str] = None
    device_id: str
    designation: Optional[str] = None
    department: Optional[str] = None
    company_name: Optional[str] = None
    report_to: Optional[str] = None
