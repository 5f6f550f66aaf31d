from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import services
from .config import Settings, settings
from .errors import ServiceError
from .logging import get_logger, setup_logging
from .middleware import RequestLogMiddleware
from .models import Employee, MeetingHistoryEntry, MeetingLog, TrackingSession
from .schemas import (
    EmployeeLocationUpdateRequest,
    EmployeeRefreshResponse,
    EmployeesResponse,
    EmployeeStatusUpdateRequest,
    LocationAppendRequest,
    LocationUpdateResponse,
    MeetingCreateRequest,
    MeetingHistoryCreateRequest,
    MeetingHistoryListResponse,
    MeetingListResponse,
    MeetingUpdateRequest,
    PingResponse,
    TrackingSessionCreateRequest,
    TrackingSessionListResponse,
    TrackingSessionUpdateRequest,
)
from .state import AppState
from .utils import format_timestamp

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


def get_state(request: Request) -> AppState:
    return request.app.state.app_state


@router.get("/ping", response_model=PingResponse)
def ping(state: AppState = Depends(get_state)) -> PingResponse:
    return PingResponse(
        message=f"Hello from {state.settings.app_name}",
        timestamp=format_timestamp(state.now()),
        status="ok",
    )


# ----------------------------------------------------------------------
# Tracking sessions
# ----------------------------------------------------------------------
@router.get("/tracking-sessions", response_model=TrackingSessionListResponse, response_model_exclude_none=True)
def tracking_sessions_list(
    employee_id: Optional[str] = Query(default=None, alias="employeeId"),
    session_status: Optional[str] = Query(default=None, alias="status"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    limit: Optional[int] = Query(default=None, ge=1),
    state: AppState = Depends(get_state),
) -> TrackingSessionListResponse:
    sessions = services.list_tracking_sessions(state, employee_id, session_status, start_date, end_date, limit)
    return TrackingSessionListResponse(sessions=sessions, total=len(sessions))


@router.post(
    "/tracking-sessions",
    response_model=TrackingSession,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def tracking_session_create(
    payload: TrackingSessionCreateRequest,
    state: AppState = Depends(get_state),
) -> TrackingSession:
    return services.create_tracking_session(state, payload.employee_id, payload.start_location)


@router.get("/tracking-sessions/{session_id}", response_model=TrackingSession, response_model_exclude_none=True)
def tracking_session_get(session_id: str, state: AppState = Depends(get_state)) -> TrackingSession:
    return services.get_tracking_session(state, session_id)


@router.put("/tracking-sessions/{session_id}", response_model=TrackingSession, response_model_exclude_none=True)
def tracking_session_update(
    session_id: str,
    payload: TrackingSessionUpdateRequest,
    state: AppState = Depends(get_state),
) -> TrackingSession:
    changes = payload.model_dump(exclude_unset=True)
    return services.update_tracking_session(state, session_id, changes)


@router.post(
    "/tracking-sessions/{session_id}/location",
    response_model=TrackingSession,
    response_model_exclude_none=True,
)
def tracking_session_add_location(
    session_id: str,
    payload: LocationAppendRequest,
    state: AppState = Depends(get_state),
) -> TrackingSession:
    return services.add_location_to_route(state, session_id, payload.location)


@router.delete("/tracking-sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def tracking_session_delete(session_id: str, state: AppState = Depends(get_state)) -> Response:
    services.delete_tracking_session(state, session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------
# Meetings
# ----------------------------------------------------------------------
@router.get("/meetings", response_model=MeetingListResponse, response_model_exclude_none=True)
def meetings_list(
    employee_id: Optional[str] = Query(default=None, alias="employeeId"),
    meeting_status: Optional[str] = Query(default=None, alias="status"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    state: AppState = Depends(get_state),
) -> MeetingListResponse:
    meetings = services.list_meetings(state, employee_id, meeting_status, start_date, end_date)
    return MeetingListResponse(meetings=meetings, total=len(meetings))


@router.post(
    "/meetings",
    response_model=MeetingLog,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def meeting_create(payload: MeetingCreateRequest, state: AppState = Depends(get_state)) -> MeetingLog:
    return services.create_meeting(
        state,
        payload.employee_id,
        payload.location,
        payload.client_name,
        payload.notes,
        payload.lead_id,
        payload.lead_info,
    )


@router.get("/meetings/{meeting_id}", response_model=MeetingLog, response_model_exclude_none=True)
def meeting_get(meeting_id: str, state: AppState = Depends(get_state)) -> MeetingLog:
    return services.get_meeting(state, meeting_id)


@router.put("/meetings/{meeting_id}", response_model=MeetingLog, response_model_exclude_none=True)
def meeting_update(
    meeting_id: str,
    payload: MeetingUpdateRequest,
    state: AppState = Depends(get_state),
) -> MeetingLog:
    changes = payload.model_dump(exclude_unset=True)
    return services.update_meeting(state, meeting_id, changes)


@router.delete("/meetings/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
def meeting_delete(meeting_id: str, state: AppState = Depends(get_state)) -> Response:
    services.delete_meeting(state, meeting_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------
# Meeting history
# ----------------------------------------------------------------------
@router.get("/meeting-history", response_model=MeetingHistoryListResponse, response_model_exclude_none=True)
def meeting_history_list(
    employee_id: Optional[str] = Query(default=None, alias="employeeId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    state: AppState = Depends(get_state),
) -> MeetingHistoryListResponse:
    return MeetingHistoryListResponse(**services.list_meeting_history(state, employee_id, page, limit))


@router.post(
    "/meeting-history",
    response_model=MeetingHistoryEntry,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def meeting_history_create(
    payload: MeetingHistoryCreateRequest,
    state: AppState = Depends(get_state),
) -> MeetingHistoryEntry:
    return services.add_meeting_to_history(
        state,
        payload.session_id,
        payload.employee_id,
        payload.meeting_details,
        payload.lead_id,
        payload.lead_info,
    )


# ----------------------------------------------------------------------
# Employees
# ----------------------------------------------------------------------
@router.get("/employees", response_model=EmployeesResponse, response_model_exclude_none=True)
def employees_list(state: AppState = Depends(get_state)) -> EmployeesResponse:
    employees = services.list_employees(state)
    return EmployeesResponse(employees=employees, total=len(employees))


@router.post("/employees")
def employee_create() -> None:
    services.reject_employee_write("creation")


@router.post("/employees/refresh-locations", response_model=EmployeeRefreshResponse, response_model_exclude_none=True)
def employees_refresh_locations(state: AppState = Depends(get_state)) -> EmployeeRefreshResponse:
    employees = services.refresh_employee_locations(state)
    return EmployeeRefreshResponse(
        message=f"Successfully refreshed locations for {len(employees)} employees",
        employees=employees,
    )


@router.get("/employees/{employee_id}", response_model=Employee, response_model_exclude_none=True)
def employee_get(employee_id: str, state: AppState = Depends(get_state)) -> Employee:
    return services.get_employee(state, employee_id)


@router.put("/employees/{employee_id}")
def employee_update(employee_id: str) -> None:
    services.reject_employee_write("updates")


@router.delete("/employees/{employee_id}")
def employee_delete(employee_id: str) -> None:
    services.reject_employee_write("deletion")


@router.put(
    "/employees/{employee_id}/location",
    response_model=LocationUpdateResponse,
    response_model_exclude_none=True,
)
def employee_update_location(
    employee_id: str,
    payload: EmployeeLocationUpdateRequest,
    state: AppState = Depends(get_state),
) -> LocationUpdateResponse:
    employee = services.update_employee_location(state, employee_id, payload.lat, payload.lng, payload.accuracy)
    return LocationUpdateResponse(employee=employee)


@router.put("/employees/{employee_id}/status", response_model=Employee, response_model_exclude_none=True)
def employee_update_status(
    employee_id: str,
    payload: EmployeeStatusUpdateRequest,
    state: AppState = Depends(get_state),
) -> Employee:
    return services.update_employee_status(state, employee_id, payload.status, payload.current_task)


# ----------------------------------------------------------------------
# Error translation
# ----------------------------------------------------------------------
async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) or "body" for error in exc.errors()})
    return JSONResponse(
        {"error": f"Invalid request: {', '.join(fields)}"},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_error",
        method=request.method,
        path=request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def create_app(app_state: Optional[AppState] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    base_settings = app_settings or (app_state.settings if app_state else settings)
    setup_logging(base_settings.log_level)

    app = FastAPI(title=base_settings.app_name)
    app.state.app_state = app_state or AppState(base_settings)
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=base_settings.cors_origins,
        allow_credentials="*" not in base_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.include_router(router)
    return app


app = create_app()
