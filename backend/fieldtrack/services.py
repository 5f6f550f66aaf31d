from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError as SchemaError

from .errors import NotFound, NotImplementedByDirectory, ValidationError
from .geo import SEED_LOCATIONS, describe_coordinates
from .logging import get_logger
from .models import (
    MEETING_COMPLETED,
    MEETING_IN_PROGRESS,
    SESSION_ACTIVE,
    SESSION_COMPLETED,
    Employee,
    EmployeePresence,
    LocationSample,
    MeetingDetails,
    MeetingHistoryEntry,
    MeetingLog,
    TrackingSession,
)
from .route import append_location, build_sample
from .state import AppState
from .utils import format_timestamp, is_blank, normalize_optional, parse_timestamp

logger = get_logger(__name__)

T = TypeVar("T", TrackingSession, MeetingLog)

_UNDATED = dt.datetime.min.replace(tzinfo=dt.timezone.utc)

EMPLOYEE_STATUSES = ("active", "inactive", "meeting")


def _parse_bound(value: Optional[str], name: str) -> Optional[dt.datetime]:
    if value is None or value == "":
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValidationError(f"Invalid {name}")
    return parsed


def _filter_and_sort(
    records: Iterable[T],
    employee_id: Optional[str],
    status: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
) -> List[T]:
    """Apply the shared list filters and order by start time, newest first.

    Works on a copy; the store order is left alone.
    """
    lower = _parse_bound(start_date, "startDate")
    upper = _parse_bound(end_date, "endDate")
    selected: List[Tuple[dt.datetime, T]] = []
    for record in records:
        if employee_id and record.employee_id != employee_id:
            continue
        if status and record.status != status:
            continue
        started = parse_timestamp(record.start_time)
        if started is None:
            # undated records only drop out of date-bounded queries
            if lower is not None or upper is not None:
                continue
            started = _UNDATED
        if lower is not None and started < lower:
            continue
        if upper is not None and started > upper:
            continue
        selected.append((started, record))
    selected.sort(key=lambda item: item[0], reverse=True)
    return [record for _, record in selected]


def _normalize_times(changes: Dict[str, Any], labels: Mapping[str, str]) -> Dict[str, Any]:
    """Reject unparseable timestamps and store the rest in canonical form."""
    normalized = dict(changes)
    for key, label in labels.items():
        value = normalized.get(key)
        if value is None:
            continue
        parsed = parse_timestamp(value)
        if parsed is None:
            raise ValidationError(f"Invalid {label}")
        normalized[key] = format_timestamp(parsed)
    return normalized


def _merge(model: Type[T], merged: Dict[str, Any]) -> T:
    try:
        return model.model_validate(merged)
    except SchemaError as exc:
        fields = ", ".join(str(error["loc"][0]) for error in exc.errors() if error.get("loc"))
        raise ValidationError(f"Invalid value for: {fields}") from exc


# ----------------------------------------------------------------------
# Tracking sessions
# ----------------------------------------------------------------------
def list_tracking_sessions(
    state: AppState,
    employee_id: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[TrackingSession]:
    sessions = _filter_and_sort(state.tracking.all(), employee_id, status, start_date, end_date)
    if limit is not None:
        sessions = sessions[:limit]
    return sessions


def create_tracking_session(
    state: AppState,
    employee_id: Optional[str],
    start_location: Optional[Mapping[str, Any]],
) -> TrackingSession:
    if not employee_id or not start_location:
        raise ValidationError("Employee ID and start location are required")
    now = state.now()
    start = build_sample(start_location, now, keep_timestamp=False)
    with state.tracking.lock:
        session = TrackingSession(
            id=state.tracking.ids.next(),
            employee_id=employee_id,
            start_time=format_timestamp(now),
            start_location=start,
            route=[start],
            total_distance=0.0,
            status=SESSION_ACTIVE,
        )
        state.tracking.put(session.id, session)
    logger.info("tracking_session_created", session_id=session.id, employee_id=employee_id)
    return session


def get_tracking_session(state: AppState, session_id: str) -> TrackingSession:
    session = state.tracking.get(session_id)
    if session is None:
        raise NotFound("Tracking session not found")
    return session


def update_tracking_session(state: AppState, session_id: str, changes: Dict[str, Any]) -> TrackingSession:
    with state.tracking.lock:
        current = get_tracking_session(state, session_id)
        changes = _normalize_times(changes, {"start_time": "startTime", "end_time": "endTime"})
        merged = {**current.model_dump(), **changes, "id": current.id}
        updated = _merge(TrackingSession, merged)
        if updated.status == SESSION_COMPLETED and not current.end_time:
            # server-derived on this transition, whatever the caller sent
            updated.end_time = None
            updated.duration = None
            updated.mark_completed(state.now())
            logger.info(
                "tracking_session_completed",
                session_id=session_id,
                duration=updated.duration,
                total_distance=round(updated.total_distance, 2),
            )
        state.tracking.put(session_id, updated)
    return updated


def add_location_to_route(
    state: AppState,
    session_id: str,
    location: Optional[Mapping[str, Any]],
) -> TrackingSession:
    if not location:
        raise ValidationError("Location is required")
    with state.tracking.lock:
        session = get_tracking_session(state, session_id)
        return append_location(session, location, state.now())


def delete_tracking_session(state: AppState, session_id: str) -> None:
    if not state.tracking.remove(session_id):
        raise NotFound("Tracking session not found")
    logger.info("tracking_session_deleted", session_id=session_id)


# ----------------------------------------------------------------------
# Meetings
# ----------------------------------------------------------------------
def _require_discussion(details: Optional[MeetingDetails]) -> None:
    if details is None or is_blank(details.discussion):
        raise ValidationError("Discussion details are required")


def list_meetings(
    state: AppState,
    employee_id: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[MeetingLog]:
    return _filter_and_sort(state.meetings.all(), employee_id, status, start_date, end_date)


def create_meeting(
    state: AppState,
    employee_id: Optional[str],
    location: Optional[Mapping[str, Any]],
    client_name: Optional[str] = None,
    notes: Optional[str] = None,
    lead_id: Optional[str] = None,
    lead_info: Optional[Dict[str, Any]] = None,
) -> MeetingLog:
    if not employee_id or not location:
        raise ValidationError("Employee ID and location are required")
    now = state.now()
    sample = build_sample(location, now, keep_timestamp=False)
    with state.meetings.lock:
        meeting = MeetingLog(
            id=state.meetings.ids.next(),
            employee_id=employee_id,
            location=sample,
            start_time=format_timestamp(now),
            client_name=client_name,
            notes=notes,
            status=MEETING_IN_PROGRESS,
            lead_id=normalize_optional(lead_id),
            lead_info=normalize_optional(lead_info),
        )
        state.meetings.put(meeting.id, meeting)
    logger.info("meeting_created", meeting_id=meeting.id, employee_id=employee_id, lead_id=meeting.lead_id)
    return meeting


def get_meeting(state: AppState, meeting_id: str) -> MeetingLog:
    meeting = state.meetings.get(meeting_id)
    if meeting is None:
        raise NotFound("Meeting not found")
    return meeting


def update_meeting(state: AppState, meeting_id: str, changes: Dict[str, Any]) -> MeetingLog:
    changes = dict(changes)
    changes.pop("end_time", None)
    with state.meetings.lock:
        current = get_meeting(state, meeting_id)
        if changes.get("meeting_details") is not None:
            details = changes["meeting_details"]
            if isinstance(details, Mapping):
                details = MeetingDetails.model_validate(details)
                changes["meeting_details"] = details
            _require_discussion(details)
        now = state.now()
        if "location" in changes:
            changes["location"] = build_sample(changes["location"], now)
        for key in ("lead_id", "lead_info"):
            if key in changes:
                changes[key] = normalize_optional(changes[key])
        merged = {**current.model_dump(), **changes, "id": current.id}
        updated = _merge(MeetingLog, merged)
        if updated.status == MEETING_COMPLETED and not current.end_time:
            updated.mark_completed(now)
            logger.info("meeting_completed", meeting_id=meeting_id, end_time=updated.end_time)
        state.meetings.put(meeting_id, updated)
    return updated


def delete_meeting(state: AppState, meeting_id: str) -> None:
    if not state.meetings.remove(meeting_id):
        raise NotFound("Meeting not found")
    logger.info("meeting_deleted", meeting_id=meeting_id)


# ----------------------------------------------------------------------
# Meeting history
# ----------------------------------------------------------------------
def add_meeting_to_history(
    state: AppState,
    session_id: Optional[str],
    employee_id: Optional[str],
    meeting_details: Optional[MeetingDetails],
    lead_id: Optional[str] = None,
    lead_info: Optional[Dict[str, Any]] = None,
) -> MeetingHistoryEntry:
    if not session_id or not employee_id or meeting_details is None:
        raise ValidationError("Session ID, employee ID, and meeting details are required")
    _require_discussion(meeting_details)
    if not meeting_details.customers:
        if not meeting_details.has_legacy_contact():
            raise ValidationError("At least one customer contact is required")
        meeting_details = meeting_details.with_legacy_contact()

    with state.history.lock:
        entry = MeetingHistoryEntry(
            id=state.history.ids.next(),
            session_id=session_id,
            employee_id=employee_id,
            meeting_details=meeting_details,
            timestamp=format_timestamp(state.now()),
            lead_id=normalize_optional(lead_id),
            lead_info=normalize_optional(lead_info),
        )
        state.history.append(entry)
        total = len(state.history)
    logger.info(
        "meeting_history_added",
        history_id=entry.id,
        session_id=session_id,
        employee_id=employee_id,
        customers=len(meeting_details.customers),
        total=total,
    )
    return entry


def list_meeting_history(
    state: AppState,
    employee_id: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    entries = [entry for entry in state.history.all() if not employee_id or entry.employee_id == employee_id]
    epoch = dt.datetime.min.replace(tzinfo=dt.timezone.utc)
    entries.sort(key=lambda entry: parse_timestamp(entry.timestamp) or epoch, reverse=True)
    start = (page - 1) * limit
    return {
        "meetings": entries[start : start + limit],
        "total": len(entries),
        "page": page,
        "total_pages": math.ceil(len(entries) / limit),
    }


# ----------------------------------------------------------------------
# Employees
# ----------------------------------------------------------------------
def _seed_presence(state: AppState, index: int) -> EmployeePresence:
    rng = state.presence.rng
    base = SEED_LOCATIONS[index % len(SEED_LOCATIONS)]
    now = format_timestamp(state.now())
    location = LocationSample(
        lat=float(base["lat"]) + (rng.random() - 0.5) * 0.1,
        lng=float(base["lng"]) + (rng.random() - 0.5) * 0.1,
        address=str(base["address"]),
        timestamp=now,
    )
    status = "meeting" if index == 1 else "inactive" if index == 3 else "active"
    task = "Client meeting" if index == 0 else "Equipment installation" if index == 1 else None
    return EmployeePresence(
        status=status,
        location=location,
        last_update=f"{rng.randint(1, 15)} minutes ago",
        current_task=task,
    )


def _presence_for(state: AppState, employee_id: str, index: int) -> EmployeePresence:
    with state.presence.lock:
        presence = state.presence.get(employee_id)
        if presence is None:
            presence = _seed_presence(state, index)
            state.presence.put(employee_id, presence)
        return presence


def _to_employee(state: AppState, user: Dict[str, Any], index: int) -> Employee:
    user_id = str(user.get("_id") or "")
    presence = _presence_for(state, user_id, index)
    companies = user.get("companyName") or []
    company_name = None
    if isinstance(companies, list) and companies and isinstance(companies[0], dict):
        company_name = companies[0].get("companyName")
    report = user.get("report")
    return Employee(
        id=user_id,
        name=user.get("name"),
        email=user.get("email"),
        phone=user.get("mobileNumber"),
        status=presence.status,
        location=presence.location,
        last_update=presence.last_update,
        current_task=presence.current_task,
        device_id=f"device_{user_id[-6:]}",
        designation=user.get("designation"),
        department=user.get("department"),
        company_name=company_name,
        report_to=report.get("name") if isinstance(report, dict) else None,
    )


def _find_user(state: AppState, employee_id: str) -> Tuple[Dict[str, Any], int]:
    users = state.directory.fetch_users()
    for index, user in enumerate(users):
        if user.get("_id") == employee_id:
            return user, index
    raise NotFound("Employee not found")


def list_employees(state: AppState) -> List[Employee]:
    users = state.directory.fetch_users()
    return [_to_employee(state, user, index) for index, user in enumerate(users)]


def get_employee(state: AppState, employee_id: str) -> Employee:
    user, index = _find_user(state, employee_id)
    return _to_employee(state, user, index)


def update_employee_location(
    state: AppState,
    employee_id: str,
    lat: Optional[float],
    lng: Optional[float],
    accuracy: Optional[float] = None,
) -> Employee:
    if lat is None or lng is None:
        raise ValidationError("Latitude and longitude are required")
    user, index = _find_user(state, employee_id)
    address = describe_coordinates(lat, lng)
    location = LocationSample(
        lat=lat,
        lng=lng,
        address=address,
        timestamp=format_timestamp(state.now()),
        accuracy=accuracy,
    )
    with state.presence.lock:
        previous = state.presence.get(employee_id)
        state.presence.put(
            employee_id,
            EmployeePresence(
                status="active",
                location=location,
                last_update="Just now",
                current_task=previous.current_task if previous else None,
            ),
        )
    logger.info("employee_location_updated", employee_id=employee_id, address=address)
    return _to_employee(state, user, index)


def update_employee_status(
    state: AppState,
    employee_id: str,
    status: Optional[str],
    current_task: Optional[str] = None,
) -> Employee:
    if not status:
        raise ValidationError("Status is required")
    if status not in EMPLOYEE_STATUSES:
        raise ValidationError(f"Unknown status: {status}")
    user, index = _find_user(state, employee_id)
    with state.presence.lock:
        previous = _presence_for(state, employee_id, index)
        state.presence.put(
            employee_id,
            previous.model_copy(
                update={
                    "status": status,
                    "current_task": current_task or previous.current_task,
                    "last_update": "Just now",
                }
            ),
        )
    return _to_employee(state, user, index)


def refresh_employee_locations(state: AppState) -> List[Employee]:
    state.presence.clear()
    employees = list_employees(state)
    logger.info("employee_locations_refreshed", count=len(employees))
    return employees


def reject_employee_write(action: str) -> None:
    raise NotImplementedByDirectory(f"Employee {action} should be handled by the external API")
