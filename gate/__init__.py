"""
Access-gate decision engine.

Client-side logic deciding whether a visitor may pass the gate and for how
long: device identity, the advisory approval session, the access request
form and approval polling, the applicant status view and the admin console.
Backends are injected; see gate.records for the interfaces and gate.http /
gate.realtime for the adapters to the Arcadia API.
"""

from gate.access_request import AccessRequestForm, AccessRequestState, ApprovalPoller
from gate.admin_console import AdminConsole
from gate.config import GateConfig
from gate.device import DeviceIdentityProvider, generate_device_id
from gate.session import Redirect, SessionContext, SessionLifecycleManager, SessionState
from gate.stage_tracker import ApplicationStatusView
from gate.storage import FileStore, MemoryStore

__all__ = [
    "AccessRequestForm",
    "AccessRequestState",
    "AdminConsole",
    "ApplicationStatusView",
    "ApprovalPoller",
    "DeviceIdentityProvider",
    "FileStore",
    "GateConfig",
    "MemoryStore",
    "Redirect",
    "SessionContext",
    "SessionLifecycleManager",
    "SessionState",
    "generate_device_id",
]
