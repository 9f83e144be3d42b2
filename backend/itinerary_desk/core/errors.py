from __future__ import annotations

from fastapi import HTTPException


class ItineraryDeskError(Exception):
    """Base for errors surfaced to users as a plain message."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ItineraryDeskError):
    status_code = 404


class InvalidItineraryError(ItineraryDeskError):
    status_code = 422


class AuthorizationError(ItineraryDeskError):
    status_code = 403


class AuthenticationError(AuthorizationError):
    status_code = 401


class InvalidTransitionError(ItineraryDeskError):
    status_code = 409


class ConcurrencyConflictError(ItineraryDeskError):
    status_code = 409


class CodeCollisionError(ItineraryDeskError):
    status_code = 503


class TransportError(ItineraryDeskError):
    """An upstream call (storage, email, PDF) failed; safe to try again later."""

    status_code = 502


class DispatchNotConfiguredError(ItineraryDeskError):
    status_code = 503


def to_http_exception(exc: ItineraryDeskError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
