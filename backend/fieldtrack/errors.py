from __future__ import annotations

from fastapi import status


class ServiceError(RuntimeError):
    """Base error raised by the lifecycle services."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamUnavailable(ServiceError):
    """The employee directory could not be reached or answered garbage."""

    status_code = status.HTTP_502_BAD_GATEWAY


class NotImplementedByDirectory(ServiceError):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
