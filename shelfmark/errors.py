"""Error taxonomy and the success/failure envelope returned by services."""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from shelfmark.extensions import db


class ShelfmarkError(Exception):
    """Base class for every failure a service reports to its caller."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def as_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class ValidationError(ShelfmarkError):
    kind = "validation"
    status_code = 400


class DuplicateNameError(ValidationError):
    kind = "duplicate_name"
    status_code = 409


class CycleError(ShelfmarkError):
    kind = "cycle"
    status_code = 409


class NotFoundError(ShelfmarkError):
    kind = "not_found"
    status_code = 404


class StoreError(ShelfmarkError):
    kind = "store"
    status_code = 500


class FetchError(ShelfmarkError):
    kind = "fetch"
    status_code = 500


@dataclass
class Result:
    ok: bool
    value: Any = None
    error: ShelfmarkError | None = None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ShelfmarkError) -> "Result":
        return cls(ok=False, error=error)

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None


def service_boundary(label: str):
    """Run a mutation and report its outcome as a ``Result``.

    The wrapped function raises taxonomy errors for expected failures and
    returns its value on success. Database errors roll the session back
    and surface as ``StoreError`` carrying the driver message.
    """

    def decorator(func):
        @wraps(func)
        def wrapped(*args, **kwargs):
            try:
                value = func(*args, **kwargs)
            except ShelfmarkError as exc:
                db.session.rollback()
                current_app.logger.warning("%s failed: %s", label, exc.message)
                return Result.failure(exc)
            except SQLAlchemyError as exc:
                db.session.rollback()
                current_app.logger.exception("%s failed in the store", label)
                return Result.failure(
                    StoreError(f"Failed to {label}. Please try again.", str(exc))
                )
            return Result.success(value)

        return wrapped

    return decorator
