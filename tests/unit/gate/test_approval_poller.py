"""
Tests for the waiting-view approval poller.
Sleeps are replaced so the polling cadence can be asserted without waiting.
"""

import asyncio
from unittest.mock import Mock

import pytest

from gate.access_request import LOADING_MESSAGES, AccessRequestState, ApprovalPoller
from gate.records import RecordStoreError
from gate.session import TO_ACCESS_REJECTED, TO_DASHBOARD, SessionContext
from gate.storage import APPROVED_AT_KEY, MemoryStore


class ScriptedStore:
    """Returns a scripted sequence of statuses, repeating the last one."""

    def __init__(self, access_requests, script):
        self.access_requests = access_requests
        self.script = list(script)
        self.device_ids = []

    async def latest_access_request(self, device_id):
        self.device_ids.append(device_id)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        if step is None:
            return None
        return self.access_requests.add(device_id=device_id, status=step)


class RecordingSleep:
    def __init__(self):
        self.durations = []

    async def __call__(self, seconds):
        self.durations.append(seconds)
        await asyncio.sleep(0)


class CountingStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.approval_writes = 0

    def set_item(self, key, value):
        if key == APPROVED_AT_KEY:
            self.approval_writes += 1
        super().set_item(key, value)


@pytest.fixture
def sleep():
    return RecordingSleep()


def make_poller(context, store, sleep, **kwargs):
    return ApprovalPoller(context, store, sleep=sleep, **kwargs)


class TestApprovalPoller:
    """Test polling until an admin decides."""

    @pytest.mark.asyncio
    async def test_approval_redirects_to_dashboard(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["pending", "pending", "approved"])
        on_redirect = Mock()
        poller = make_poller(context, store, sleep, on_redirect=on_redirect)

        redirect = await poller.wait()

        assert redirect == TO_DASHBOARD
        on_redirect.assert_called_once_with(TO_DASHBOARD)
        assert poller.state == AccessRequestState.APPROVED
        assert poller.checks == 3
        assert context.session.is_session_valid() is True

    @pytest.mark.asyncio
    async def test_polls_every_two_seconds(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["pending", "pending", "approved"])

        await make_poller(context, store, sleep).wait()

        assert sleep.durations.count(2.0) >= 2

    @pytest.mark.asyncio
    async def test_polls_for_this_device(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["approved"])

        await make_poller(context, store, sleep).wait()

        assert store.device_ids == [context.device.get_device_id()]

    @pytest.mark.asyncio
    async def test_rejection_redirects_back(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["pending", "rejected"])
        poller = make_poller(context, store, sleep)

        redirect = await poller.wait()

        assert redirect == TO_ACCESS_REJECTED
        assert redirect.url == "/access?rejected=true"
        assert poller.state == AccessRequestState.REJECTED
        assert context.session.is_session_valid() is False

    @pytest.mark.asyncio
    async def test_fetch_errors_are_retried(self, context, access_requests, sleep):
        store = ScriptedStore(
            access_requests,
            [RecordStoreError("timeout"), RecordStoreError("timeout"), "approved"],
        )
        poller = make_poller(context, store, sleep)

        assert await poller.wait() == TO_DASHBOARD
        assert poller.failures == 2

    @pytest.mark.asyncio
    async def test_missing_record_keeps_polling(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, [None, "approved"])

        assert await make_poller(context, store, sleep).wait() == TO_DASHBOARD

    @pytest.mark.asyncio
    async def test_approval_session_written_once(self, access_requests, sleep):
        local = CountingStore()
        context = SessionContext.create(local)
        store = ScriptedStore(access_requests, ["approved"])
        poller = make_poller(context, store, sleep)

        await poller.check_once()
        await poller.check_once()

        assert poller.approved is True
        assert local.approval_writes == 1

    @pytest.mark.asyncio
    async def test_dispose_stops_polling(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["pending"])
        poller = make_poller(context, store, sleep)

        dispose = poller.start()
        for _ in range(10):
            await asyncio.sleep(0)
        dispose()
        dispose()

        assert await poller.wait() is None
        assert poller.running is False
        checks = poller.checks
        for _ in range(10):
            await asyncio.sleep(0)
        assert poller.checks == checks

    @pytest.mark.asyncio
    async def test_start_after_dispose_rejected(self, context, access_requests, sleep):
        poller = make_poller(context, ScriptedStore(access_requests, ["pending"]), sleep)
        poller.dispose()

        with pytest.raises(RuntimeError):
            poller.start()

    @pytest.mark.asyncio
    async def test_context_manager_cleans_up(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["pending"])

        async with make_poller(context, store, sleep) as poller:
            await asyncio.sleep(0)
            assert poller.running is True

        assert poller.running is False
        assert poller.redirect is None

    @pytest.mark.asyncio
    async def test_context_manager_wait(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["pending", "approved"])

        async with make_poller(context, store, sleep) as poller:
            redirect = await poller.wait()

        assert redirect == TO_DASHBOARD


class TestLoadingMessages:
    """Test the cosmetic message rotation."""

    def test_four_messages(self):
        assert len(LOADING_MESSAGES) == 4
        assert LOADING_MESSAGES[0].title == "Protecting Our Planet"

    def test_rotation_wraps(self, context, access_requests, sleep):
        poller = make_poller(context, access_requests, sleep)
        titles = [poller.rotate_message().title for _ in range(4)]

        assert titles[-1] == LOADING_MESSAGES[0].title
        assert poller.message_index == 0

    @pytest.mark.asyncio
    async def test_rotates_every_three_seconds(self, context, access_requests, sleep):
        store = ScriptedStore(access_requests, ["pending"] * 5 + ["approved"])

        await make_poller(context, store, sleep).wait()

        assert 3.0 in sleep.durations
