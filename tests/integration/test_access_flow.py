"""
Integration tests for the complete access gate flow.

Tests end-to-end scenarios through the gate engine and the real API:
- Visitor submits at the target → admin approves → visitor reaches the dashboard
- Rejection sends the visitor back to the form
- Applicant status view follows the admin's pipeline actions live
"""

import asyncio

import httpx
import pytest
import pytest_asyncio

from core.geofence import Coordinates
from core.pipeline import Stage
from gate.access_request import AccessRequestForm, AccessRequestState, ApprovalPoller
from gate.admin_console import AdminConsole
from gate.geolocation import StaticGeolocationProvider
from gate.http import HttpBackend
from gate.session import TO_ACCESS_REJECTED, TO_DASHBOARD, TO_WAITING, SessionContext
from gate.stage_tracker import ApplicationStatusView
from gate.storage import MemoryStore

ADMIN = ("admin@example.com", "admin-password-123")
APPLICANT = ("jane@example.com", "jane-password-123")
TARGET = Coordinates(22.3193, 114.2057)


async def quick_sleep(seconds):
    await asyncio.sleep(0)


@pytest_asyncio.fixture
async def http_client(app, database):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        for email, password in (ADMIN, APPLICANT):
            response = await client.post(
                "/api/v1/auth/sign-up", json={"email": email, "password": password}
            )
            assert response.status_code == 201, response.text
        yield client


@pytest.fixture
def backend_factory(http_client):
    def _backend():
        return HttpBackend(base_url="http://test", client=http_client)

    return _backend


@pytest_asyncio.fixture
async def console(app, backend_factory):
    backend = backend_factory()
    admin = AdminConsole(backend, backend, backend, backend, app.state.change_feed)
    await admin.sign_in(*ADMIN)
    yield admin
    await admin.sign_out()


@pytest.fixture
def visitor():
    """A fresh device with empty local storage."""
    return SessionContext.create(MemoryStore())


async def submit_request(visitor, backend, rejected=False):
    form = AccessRequestForm(
        visitor, backend, StaticGeolocationProvider(TARGET), rejected=rejected
    )
    assert form.on_mount() is None
    await form.capture_location()
    assert await form.submit("Jane Doe") == TO_WAITING
    return form


class TestVisitorApproval:
    """Test the visitor's path through the gate."""

    @pytest.mark.asyncio
    async def test_approved_visitor_reaches_dashboard(self, visitor, backend_factory, console):
        visitor_backend = backend_factory()
        await submit_request(visitor, visitor_backend)

        poller = ApprovalPoller(visitor, visitor_backend, sleep=quick_sleep)
        assert await poller.check_once() == AccessRequestState.PENDING
        assert visitor.require_valid_session() is not None

        board = await console.load_requests()
        assert len(board.pending) == 1
        assert board.pending[0].device_id == visitor.device.get_device_id()

        await console.approve(board.pending[0].id)

        assert await poller.wait() == TO_DASHBOARD
        assert visitor.session.is_session_valid() is True
        assert visitor.require_valid_session() is None

        # returning to the form goes straight to the dashboard
        form = AccessRequestForm(visitor, visitor_backend, StaticGeolocationProvider(TARGET))
        assert form.on_mount() == TO_DASHBOARD

    @pytest.mark.asyncio
    async def test_rejected_visitor_can_try_again(self, visitor, backend_factory, console):
        visitor_backend = backend_factory()
        await submit_request(visitor, visitor_backend)

        board = await console.load_requests()
        await console.reject(board.pending[0].id)

        poller = ApprovalPoller(visitor, visitor_backend, sleep=quick_sleep)
        redirect = await poller.wait()

        assert redirect == TO_ACCESS_REJECTED
        assert visitor.session.is_session_valid() is False

        form = await submit_request(visitor, visitor_backend, rejected=True)
        assert form.rejected is False
        board = await console.load_requests()
        assert len(board.pending) == 1
        assert len(board.rejected) == 1

    @pytest.mark.asyncio
    async def test_logout_clears_approval(self, visitor, backend_factory, console):
        visitor_backend = backend_factory()
        await submit_request(visitor, visitor_backend)
        await console.approve((await console.load_requests()).pending[0].id)
        await ApprovalPoller(visitor, visitor_backend, sleep=quick_sleep).wait()

        redirect = visitor.logout()

        assert redirect.url == "/access"
        assert visitor.session.is_session_valid() is False


class TestApplicantPipeline:
    """Test the applicant status view against the admin pipeline."""

    @pytest.mark.asyncio
    async def test_status_follows_pipeline(self, app, http_client, backend_factory, console, visitor):
        applicant = backend_factory()
        identity = await applicant.sign_in(*APPLICANT)
        response = await http_client.post(
            "/api/v1/applications",
            json={"user_id": identity.user_id, "name": "Jane Doe", "email": identity.email},
            headers={"Authorization": f"Bearer {console.identity_provider.token}"},
        )
        assert response.status_code == 201, response.text
        application_id = response.json()["id"]

        visitor.session.set_approval_session()
        view = ApplicationStatusView(
            applicant, app.state.change_feed, identity.user_id, context=visitor
        )
        assert await view.mount() is None
        assert (view.stage, view.progress) == (Stage.APPLICATION, 33)
        assert view.call_to_action is None

        await console.unlock_test(application_id)
        assert view.progress == 66
        assert view.call_to_action.label == "Take Online Test"

        await console.assign_interviewer(application_id, "Alex Chan")
        assert (view.stage, view.progress) == (Stage.INTERVIEW, 90)

        await console.complete(application_id)
        assert view.progress == 100

        view.unmount()
        await applicant.sign_out()

    @pytest.mark.asyncio
    async def test_no_application_offers_form(self, app, backend_factory, visitor):
        applicant = backend_factory()
        identity = await applicant.sign_in(*APPLICANT)
        visitor.session.set_approval_session()

        view = ApplicationStatusView(
            applicant, app.state.change_feed, identity.user_id, context=visitor
        )
        await view.mount()

        assert view.is_empty is True
        assert view.progress == 0
        assert view.call_to_action.label == "Start Application"
        view.unmount()
