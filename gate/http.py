"""HTTP adapter binding the gate engine to the Arcadia API."""

import logging
from typing import Any, Optional

import httpx

from gate.errors import InvalidCredentialsError
from gate.records import (
    AccessRequestRecord,
    ApplicationRecord,
    Identity,
    RecordStoreError,
)

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("detail"):
            return str(body["detail"])
    return response.reason_phrase


class HttpBackend:
    """
    Record store, identity provider and admin directory over HTTP.

    404 on single-record lookups means "no rows" and maps to None; every
    other failure raises RecordStoreError.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_prefix: str = "/api/v1",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self.token: Optional[str] = None
        self.identity: Optional[Identity] = None

    @property
    def realtime_url(self) -> str:
        """Base WebSocket URL of the change streams."""
        if self.base_url.startswith("https://"):
            root = "wss://" + self.base_url[len("https://"):]
        else:
            root = "ws://" + self.base_url.removeprefix("http://")
        return f"{root}{self.api_prefix}/realtime"

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        missing_ok: bool = False,
        **kwargs,
    ) -> Any:
        try:
            response = await self.client.request(
                method,
                f"{self.api_prefix}{path}",
                headers=self._headers(),
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise RecordStoreError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404 and missing_ok:
            return None
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {message}")
            raise RecordStoreError(message, status_code=response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Access requests

    async def insert_access_request(self, record: dict[str, Any]) -> AccessRequestRecord:
        payload = {
            "name": record["name"],
            "location_lat": record["location_lat"],
            "location_lng": record["location_lng"],
            "device_id": record["device_id"],
        }
        data = await self._request("POST", "/access-requests", json=payload)
        return AccessRequestRecord.from_dict(data)

    async def latest_access_request(self, device_id: str) -> Optional[AccessRequestRecord]:
        data = await self._request(
            "GET",
            "/access-requests/latest",
            params={"device_id": device_id},
            missing_ok=True,
        )
        return AccessRequestRecord.from_dict(data) if data else None

    async def list_access_requests(self, status: str) -> list[AccessRequestRecord]:
        data = await self._request("GET", "/access-requests", params={"status": status})
        return [AccessRequestRecord.from_dict(item) for item in data]

    async def update_access_request_status(
        self, request_id: str, status: str
    ) -> AccessRequestRecord:
        data = await self._request(
            "PATCH", f"/access-requests/{request_id}", json={"status": status}
        )
        return AccessRequestRecord.from_dict(data)

    # Applications

    async def get_application_for_user(self, user_id: str) -> Optional[ApplicationRecord]:
        data = await self._request("GET", "/applications/me", missing_ok=True)
        if not data:
            return None
        record = ApplicationRecord.from_dict(data)
        if record.user_id != user_id:
            logger.warning("Signed-in identity does not match the requested applicant")
            return None
        return record

    async def list_applications(self, stage: Optional[str] = None) -> list[ApplicationRecord]:
        params = {"stage": stage} if stage else None
        data = await self._request("GET", "/applications", params=params)
        return [ApplicationRecord.from_dict(item) for item in data]

    async def unlock_test(self, application_id: str) -> ApplicationRecord:
        data = await self._request("POST", f"/applications/{application_id}/unlock-test")
        return ApplicationRecord.from_dict(data)

    async def assign_interviewer(self, application_id: str, interviewer: str) -> ApplicationRecord:
        data = await self._request(
            "POST",
            f"/applications/{application_id}/assign-interviewer",
            json={"interviewer": interviewer},
        )
        return ApplicationRecord.from_dict(data)

    async def complete_application(self, application_id: str) -> ApplicationRecord:
        data = await self._request("POST", f"/applications/{application_id}/complete")
        return ApplicationRecord.from_dict(data)

    async def list_interviewers(self) -> list[str]:
        data = await self._request("GET", "/interviewers")
        return list(data["interviewers"])

    # Identity

    async def sign_in(self, email: str, password: str) -> Identity:
        try:
            data = await self._request(
                "POST", "/auth/sign-in", json={"email": email, "password": password}
            )
        except RecordStoreError as e:
            if e.status_code in (401, 422):
                raise InvalidCredentialsError() from e
            raise
        self.token = data["access_token"]
        self.identity = Identity(user_id=data["user_id"], email=data["email"])
        return self.identity

    async def sign_out(self) -> None:
        if not self.token:
            return
        try:
            await self._request("POST", "/auth/sign-out")
        finally:
            # the local session is dropped even if the server call fails
            self.token = None
            self.identity = None

    async def get_admin_user(self) -> Optional[dict[str, Any]]:
        if not self.token:
            return None
        return await self._request("GET", "/admin-users/me", missing_ok=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpBackend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
