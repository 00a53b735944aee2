"""
User-facing gate errors.

Every error carries the inline message shown in the active form. View models
catch these into their `error` attribute so control returns to an
interactive retry state.
"""

from typing import Optional

from core.exceptions import GateError


class AccessGateError(GateError):
    """Base class for failures shown to the visitor or admin."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Access request form
class NameRequiredError(AccessGateError):
    default_message = "Please enter your name."


class LocationRequiredError(AccessGateError):
    default_message = "Please allow access to your location."


class OutOfRangeError(AccessGateError):
    default_message = "Access Denied"

    def __init__(self, distance_km: Optional[float] = None):
        self.distance_km = distance_km
        super().__init__()


class SubmissionFailedError(AccessGateError):
    default_message = "Failed to submit request. Please try again."


# Geolocation
class GeolocationError(AccessGateError):
    default_message = "Unable to retrieve your location. Please enable location services."


class PermissionDeniedError(GeolocationError):
    default_message = "Location permission was denied. Please enable location services."


class PositionUnavailableError(GeolocationError):
    default_message = "Unable to retrieve your location. Please enable location services."


class LocationTimeoutError(GeolocationError):
    default_message = "Timed out while retrieving your location. Please try again."


class GeolocationUnsupportedError(GeolocationError):
    default_message = "Geolocation is not supported by this browser."


# Applicant status
class ApplicationLoadError(AccessGateError):
    default_message = "Unable to load your application status. Please try again."


# Admin console
class InvalidCredentialsError(AccessGateError):
    default_message = "Invalid email or password"


class UnauthorizedAdminError(AccessGateError):
    default_message = "Unauthorized: Admin access required"


class UnknownInterviewerError(AccessGateError):
    default_message = "Please select an interviewer from the list."


class AdminActionError(AccessGateError):
    default_message = "The action failed. Please try again."


class RequestsLoadError(AccessGateError):
    default_message = "Failed to load access requests. Please refresh."


class ApplicationsLoadError(AccessGateError):
    default_message = "Failed to load applications. Please refresh."
