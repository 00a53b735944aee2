"""Domain exceptions shared by the API services and the gate engine."""


class GateError(Exception):
    """Base exception for access-gate domain errors."""
    pass


class AccessDeniedError(GateError):
    """Raised when a reported location falls outside the geofence."""

    def __init__(self, distance_km: float | None = None):
        self.distance_km = distance_km
        super().__init__("Access Denied")


class InvalidTransitionError(GateError, ValueError):
    """Raised when a lifecycle transition is not permitted from the current state."""

    def __init__(self, message: str, current: str | None = None, target: str | None = None):
        self.current = current
        self.target = target
        super().__init__(message)


class RecordNotFoundError(GateError):
    """Raised when a record addressed by id does not exist."""

    def __init__(self, resource: str, record_id: str):
        self.resource = resource
        self.record_id = record_id
        super().__init__(f"{resource} {record_id} not found")


class FaceVerificationUnavailable(GateError):
    """Raised when no face verification backend is configured."""
    pass


class DuplicateRecordError(GateError):
    """Raised when a record that must be unique already exists."""

    def __init__(self, resource: str, detail: str):
        self.resource = resource
        super().__init__(detail)


class AuthenticationError(GateError):
    """Raised when credentials or a bearer token are not accepted."""
    pass


class MissingFaceReferenceError(GateError):
    """Raised when face approval is attempted before a reference photo exists."""

    def __init__(self):
        super().__init__("Please upload your face photo first")


class FaceVerifierError(GateError):
    """Raised when the face verifier returns a result outside its contract."""
    pass
