from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from .models import (
    CamelModel,
    Employee,
    MeetingDetails,
    MeetingHistoryEntry,
    MeetingLog,
    TrackingSession,
)


class PingResponse(CamelModel):
    message: str
    timestamp: str
    status: str


class ErrorResponse(CamelModel):
    error: str


class TrackingSessionCreateRequest(CamelModel):
    employee_id: Optional[str] = None
    start_location: Optional[Dict[str, Any]] = None


class TrackingSessionUpdateRequest(CamelModel):
    """Editable session fields. The route, its start and its distance only grow through appends."""

    employee_id: Optional[str] = None
    start_time: Optional[str] = None
    status: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None


class LocationAppendRequest(CamelModel):
    location: Optional[Dict[str, Any]] = None


class TrackingSessionListResponse(CamelModel):
    sessions: List[TrackingSession]
    total: int


class MeetingCreateRequest(CamelModel):
    employee_id: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    client_name: Optional[str] = None
    notes: Optional[str] = None
    lead_id: Optional[str] = None
    lead_info: Optional[Dict[str, Any]] = None


class MeetingUpdateRequest(CamelModel):
    employee_id: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    client_name: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    lead_id: Optional[str] = None
    lead_info: Optional[Dict[str, Any]] = None
    meeting_details: Optional[MeetingDetails] = None


class MeetingListResponse(CamelModel):
    meetings: List[MeetingLog]
    total: int


class MeetingHistoryCreateRequest(CamelModel):
    session_id: Optional[str] = None
    employee_id: Optional[str] = None
    meeting_details: Optional[MeetingDetails] = None
    lead_id: Optional[str] = None
    lead_info: Optional[Dict[str, Any]] = None


class MeetingHistoryListResponse(CamelModel):
    meetings: List[MeetingHistoryEntry]
    total: int
    page: int
    total_pages: int


class EmployeesResponse(CamelModel):
    employees: List[Employee]
    total: int


class EmployeeLocationUpdateRequest(CamelModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    accuracy: Optional[float] = None


class EmployeeStatusUpdateRequest(CamelModel):
    status: Optional[str] = None
    current_task: Optional[str] = None


class LocationUpdateResponse(CamelModel):
    success: bool = True
    employee: Employee


class EmployeeRefreshResponse(CamelModel):
    success: bool = True
    message: str
    employees: List[Employee] = Field(default_factory=list)
