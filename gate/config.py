"""Gate engine configuration."""

from dataclasses import dataclass, field
from datetime import timedelta

from core.geofence import Coordinates, Geofence
from core.pipeline import DEFAULT_INTERVIEWERS


@dataclass(frozen=True)
class GateConfig:
    """Constants the gate engine runs with. Injected into every component."""

    target: Coordinates = Coordinates(22.3193, 114.2057)
    radius_km: float = 1.0
    session_validity: timedelta = timedelta(days=3)
    location_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 2.0
    message_rotation_seconds: float = 3.0
    approval_redirect_delay_seconds: float = 2.0
    interviewers: tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_INTERVIEWERS))
    application_form_url: str = "https://tally.so/r/w2g76D"
    online_test_url: str = "https://www.autoproctor.co/tests/3m2EI3BXwn/load"

    @classmethod
    def from_settings(cls, settings) -> "GateConfig":
        """Build from the service Settings so client and server agree."""
        return cls(
            target=Coordinates(settings.target_latitude, settings.target_longitude),
            radius_km=settings.access_radius_km,
            session_validity=timedelta(days=settings.session_validity_days),
            location_timeout_seconds=settings.location_timeout_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
            message_rotation_seconds=settings.message_rotation_seconds,
            approval_redirect_delay_seconds=settings.approval_redirect_delay_seconds,
            interviewers=tuple(settings.interviewers),
            application_form_url=settings.application_form_url,
            online_test_url=settings.online_test_url,
        )

    @property
    def geofence(self) -> Geofence:
        return Geofence(self.target, self.radius_km)
