# errors.py
"""Exception hierarchy for the EV simulator API."""

from __future__ import annotations


class SimulatorError(Exception):
    """Base exception for all simulator errors."""

    status_code = 500


class ConfigError(SimulatorError):
    """Invalid or missing configuration."""


class SimulatorValidationError(SimulatorError):
    """A required field is missing or out of range."""

    status_code = 400


class ConflictError(SimulatorError):
    """The request does not fit the vehicle's current state."""

    status_code = 400


class NotFoundError(SimulatorError):
    """Unknown user or station."""

    status_code = 404


class UpstreamError(SimulatorError):
    """The store, route service or push service failed."""

    def __init__(self, message: str, *, upstream: str = "") -> None:
        self.upstream = upstream
        super().__init__(message)
