from __future__ import annotations

from enum import Enum


class ClockError(Exception):
    """Saat (clock) çekirdeğinin tüm tipli hatalarının tabanı."""

    code = "CLOCK_ERROR"


class InvalidCoordinate(ClockError, ValueError):
    code = "INVALID_COORDINATE"

    def __init__(self, latitude, longitude):
        super().__init__(f"invalid coordinate: lat={latitude!r} lon={longitude!r}")
        self.latitude = latitude
        self.longitude = longitude


class LocationReason(str, Enum):
    PERMISSION_DENIED = "PermissionDenied"
    TIMEOUT = "Timeout"
    SENSOR_UNAVAILABLE = "SensorUnavailable"


class LocationError(Exception):
    """Konum sağlayıcısının hatası; çekirdek bunu LocationUnknown'a çevirir."""

    def __init__(self, reason: LocationReason):
        super().__init__(reason.value)
        self.reason = reason


class LocationUnknown(ClockError):
    code = "LOCATION_UNKNOWN"

    def __init__(self, reason: LocationReason | None = None):
        msg = "position unavailable" if reason is None else f"position unavailable ({reason.value})"
        super().__init__(msg)
        self.reason = reason


class OutOfRange(ClockError):
    code = "OUT_OF_RANGE"

    def __init__(self, distance_m: float, radius_m: float):
        super().__init__(f"{distance_m:.1f} m from reference point (allowed {radius_m:.0f} m)")
        self.distance_m = distance_m
        self.radius_m = radius_m


class InvalidTransition(ClockError):
    code = "INVALID_TRANSITION"

    def __init__(self, from_phase, kind):
        super().__init__(f"{kind.value} is not allowed while {from_phase.value}")
        self.from_phase = from_phase
        self.kind = kind


class SessionAlreadyActive(ClockError):
    code = "SESSION_ALREADY_ACTIVE"

    def __init__(self, session_id: str):
        super().__init__(f"session {session_id} is still active")
        self.session_id = session_id


class NoActiveSession(ClockError):
    code = "NO_ACTIVE_SESSION"

    def __init__(self, user_id: str):
        super().__init__(f"user {user_id} has no active session")
        self.user_id = user_id


class OperationInProgress(ClockError):
    code = "OPERATION_IN_PROGRESS"

    def __init__(self, user_id: str):
        super().__init__(f"another clock operation is pending for user {user_id}")
        self.user_id = user_id


class DuplicateEvent(ClockError):
    code = "DUPLICATE_EVENT"

    def __init__(self, event_id: str):
        super().__init__(f"event {event_id} already recorded with a different payload")
        self.event_id = event_id


class StoreError(ClockError):
    code = "STORE_ERROR"

    def __init__(self, cause: BaseException | str):
        super().__init__(f"persistence failed: {cause}")
        self.cause = cause
