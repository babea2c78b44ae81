"""Unit tests for GoogleWorkspaceClient.

Uses httpx.MockTransport in place of the Google REST APIs.
"""

import base64
import json
from unittest.mock import MagicMock

import httpx
import pytest

from domain.models.workspace import BusySlot, DriveFile
from infrastructure.google.auth_capability import FileTokenAuthCapability
from infrastructure.google.workspace_client import (
    CALENDAR_EVENTS_URL,
    DRIVE_FILES_URL,
    GMAIL_SEND_URL,
    GOOGLE_TOKEN_URL,
    GoogleWorkspaceClient,
    WorkspaceAuthError,
    WorkspaceError,
    build_raw_message,
)


def make_auth(token="ya29.token"):
    auth = MagicMock()
    auth.access_token = token
    auth.refresh_token = None
    return auth


def make_client(handler, token="ya29.token") -> GoogleWorkspaceClient:
    return GoogleWorkspaceClient(
        auth=make_auth(token),
        time_zone="America/Los_Angeles",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def decode_raw(raw: str) -> str:
    return base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)).decode("utf-8")


class TestBuildRawMessage:
    """Test Gmail raw message encoding."""

    def test_round_trips_headers_and_body(self):
        """Test the encoded message content."""
        raw = build_raw_message("a@b.com", "Hi", "Hello Marcus")

        assert "=" not in raw
        assert decode_raw(raw) == "To: a@b.com\r\nSubject: Hi\r\nContent-Type: text/plain; charset=utf-8\r\n\r\nHello Marcus"


class TestSendEmail:
    """Test Gmail sending."""

    @pytest.mark.asyncio
    async def test_success(self):
        """Test a sent email returns its message id."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["raw"] = json.loads(request.content)["raw"]
            return httpx.Response(200, json={"id": "msg-1", "threadId": "t-1"})

        client = make_client(handler)

        result = await client.send_email("a@b.com", "Hi", "Hello")

        assert result.success is True
        assert result.message_id == "msg-1"
        assert seen["url"] == GMAIL_SEND_URL
        assert seen["auth"] == "Bearer ya29.token"
        assert "Subject: Hi" in decode_raw(seen["raw"])

    @pytest.mark.asyncio
    async def test_api_error(self):
        """Test that an API error becomes a failed result."""
        client = make_client(lambda request: httpx.Response(403, json={"error": {"message": "Insufficient Permission"}}))

        result = await client.send_email("a@b.com", "Hi", "Hello")

        assert result.success is False
        assert result.error == "Insufficient Permission"

    @pytest.mark.asyncio
    async def test_not_authenticated(self):
        """Test that a missing token raises before any request."""
        client = make_client(lambda request: httpx.Response(200), token=None)

        with pytest.raises(WorkspaceAuthError):
            await client.send_email("a@b.com", "Hi", "Hello")


class TestSearchFiles:
    """Test Drive search."""

    @pytest.mark.asyncio
    async def test_query_and_results(self):
        """Test the query string and file mapping."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url).split("?")[0]
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={"files": [{"id": "f1", "name": "Case Study", "mimeType": "application/pdf", "webViewLink": "https://drive/f1"}]},
            )

        client = make_client(handler)

        files = await client.search_files("Jamie's case")

        assert files == [DriveFile(id="f1", name="Case Study", mime_type="application/pdf", link="https://drive/f1")]
        assert seen["url"] == DRIVE_FILES_URL
        assert seen["params"]["q"] == "name contains 'Jamie\\'s case' and trashed = false"
        assert seen["params"]["pageSize"] == "10"

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        """Test that a 401 raises WorkspaceAuthError."""
        client = make_client(lambda request: httpx.Response(401, json={"error": {"message": "Invalid Credentials"}}))

        with pytest.raises(WorkspaceAuthError):
            await client.search_files("x")

    @pytest.mark.asyncio
    async def test_server_error(self):
        """Test that other HTTP errors raise WorkspaceError."""
        client = make_client(lambda request: httpx.Response(500, json={"error": {"message": "Backend Error"}}))

        with pytest.raises(WorkspaceError) as exc_info:
            await client.search_files("x")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Backend Error"


class TestCreateEvent:
    """Test Calendar event creation."""

    @pytest.mark.asyncio
    async def test_event_body(self):
        """Test the event payload, Meet request and notification params."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url).split("?")[0]
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "evt-1", "htmlLink": "https://cal/evt-1"})

        client = make_client(handler)

        result = await client.create_event(
            "Discovery Call",
            "2025-01-02T10:00:00",
            "2025-01-02T10:30:00",
            description="Agenda",
            attendees=["a@b.com"],
        )

        assert result.success is True
        assert result.event_id == "evt-1"
        assert result.link == "https://cal/evt-1"
        assert seen["url"] == CALENDAR_EVENTS_URL
        assert seen["params"] == {"conferenceDataVersion": "1", "sendUpdates": "all"}
        body = seen["body"]
        assert body["start"] == {"dateTime": "2025-01-02T10:00:00", "timeZone": "America/Los_Angeles"}
        assert body["attendees"] == [{"email": "a@b.com"}]
        assert body["description"] == "Agenda"
        assert body["conferenceData"]["createRequest"]["conferenceSolutionKey"] == {"type": "hangoutsMeet"}

    @pytest.mark.asyncio
    async def test_optional_fields_omitted(self):
        """Test that missing description and attendees are left out."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "evt-1"})

        client = make_client(handler)

        await client.create_event("Call", "2025-01-02T10:00:00", "2025-01-02T10:30:00")

        assert "description" not in seen["body"]
        assert "attendees" not in seen["body"]

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test that a request failure becomes a failed result."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)

        result = await client.create_event("Call", "a", "b")

        assert result.success is False
        assert "refused" in result.error


class TestGetAvailability:
    """Test Calendar availability."""

    @pytest.mark.asyncio
    async def test_day_bounds_and_slots(self):
        """Test the queried window and busy slot mapping."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={
                    "items": [
                        {"start": {"dateTime": "2025-01-02T09:00:00-08:00"}, "end": {"dateTime": "2025-01-02T10:00:00-08:00"}},
                        {"start": {"date": "2025-01-02"}, "end": {"date": "2025-01-03"}},
                    ]
                },
            )

        client = make_client(handler)

        slots = await client.get_availability("2025-01-02")

        assert slots == [
            BusySlot(start="2025-01-02T09:00:00-08:00", end="2025-01-02T10:00:00-08:00"),
            BusySlot(start="2025-01-02", end="2025-01-03"),
        ]
        assert seen["params"]["timeMin"] == "2025-01-02T00:00:00-08:00"
        assert seen["params"]["timeMax"] == "2025-01-02T23:59:59.999000-08:00"
        assert seen["params"]["singleEvents"] == "true"
        assert seen["params"]["orderBy"] == "startTime"

    @pytest.mark.asyncio
    async def test_timestamp_truncated_to_date(self):
        """Test that a full timestamp is accepted."""
        client = make_client(lambda request: httpx.Response(200, json={"items": []}))

        assert await client.get_availability("2025-01-02T15:00:00Z") == []

    @pytest.mark.asyncio
    async def test_invalid_date(self):
        """Test that an invalid date raises WorkspaceError."""
        client = make_client(lambda request: httpx.Response(200, json={"items": []}))

        with pytest.raises(WorkspaceError):
            await client.get_availability("next thursday")


class TestTokenRefresh:
    """Test access token refresh after Google rejects an expired token."""

    def make_refreshing_client(self, tmp_path, handler, tokens=None) -> tuple[GoogleWorkspaceClient, FileTokenAuthCapability]:
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps(tokens or {"access_token": "expired", "refresh_token": "1//refresh"}), encoding="utf-8")
        auth = FileTokenAuthCapability(path)
        client = GoogleWorkspaceClient(
            auth=auth,
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            client_id="client-id",
            client_secret="client-secret",
        )
        return client, auth

    @pytest.mark.asyncio
    async def test_refreshes_and_retries(self, tmp_path):
        """Test that a 401 triggers a refresh and the call is retried with the new token."""
        seen = {"auth": [], "refresh": None}

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == GOOGLE_TOKEN_URL:
                seen["refresh"] = dict(httpx.QueryParams(request.content.decode("utf-8")))
                return httpx.Response(200, json={"access_token": "fresh", "expires_in": 3599, "token_type": "Bearer"})
            seen["auth"].append(request.headers["authorization"])
            if request.headers["authorization"] == "Bearer expired":
                return httpx.Response(401, json={"error": {"message": "Invalid Credentials"}})
            return httpx.Response(200, json={"files": []})

        client, auth = self.make_refreshing_client(tmp_path, handler)

        files = await client.search_files("x")

        assert files == []
        assert seen["auth"] == ["Bearer expired", "Bearer fresh"]
        assert seen["refresh"] == {
            "client_id": "client-id",
            "client_secret": "client-secret",
            "refresh_token": "1//refresh",
            "grant_type": "refresh_token",
        }
        assert auth.access_token == "fresh"
        assert auth.refresh_token == "1//refresh"
        stored = json.loads(auth.token_path.read_text(encoding="utf-8"))
        assert stored["access_token"] == "fresh"
        assert stored["refresh_token"] == "1//refresh"
        assert "expiry_date" in stored

    @pytest.mark.asyncio
    async def test_send_email_retried_after_refresh(self, tmp_path):
        """Test that sending an email also recovers from an expired token."""

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == GOOGLE_TOKEN_URL:
                return httpx.Response(200, json={"access_token": "fresh", "expires_in": 3599})
            if request.headers["authorization"] == "Bearer expired":
                return httpx.Response(401, json={"error": {"message": "Invalid Credentials"}})
            return httpx.Response(200, json={"id": "msg-2"})

        client, _ = self.make_refreshing_client(tmp_path, handler)

        result = await client.send_email("a@b.com", "Hi", "Hello")

        assert result.success is True
        assert result.message_id == "msg-2"

    @pytest.mark.asyncio
    async def test_refresh_rejected(self, tmp_path):
        """Test that a failed refresh leaves the original 401 in place."""

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == GOOGLE_TOKEN_URL:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(401, json={"error": {"message": "Invalid Credentials"}})

        client, auth = self.make_refreshing_client(tmp_path, handler)

        with pytest.raises(WorkspaceAuthError):
            await client.search_files("x")
        assert auth.access_token == "expired"

    @pytest.mark.asyncio
    async def test_no_refresh_token(self, tmp_path):
        """Test that without a refresh token the token endpoint is never called."""
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url).split("?")[0])
            return httpx.Response(401, json={"error": {"message": "Invalid Credentials"}})

        client, _ = self.make_refreshing_client(tmp_path, handler, tokens={"access_token": "expired"})

        with pytest.raises(WorkspaceAuthError):
            await client.search_files("x")
        assert urls == [DRIVE_FILES_URL]
