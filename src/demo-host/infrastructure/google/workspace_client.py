"""Google Workspace client for Gmail, Drive and Calendar operations.

Talks to the Google REST APIs directly with httpx using the OAuth access
token held by the auth capability.
"""

import base64
import logging
import time
from datetime import date as date_type
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional, Protocol
from zoneinfo import ZoneInfo

import httpx
from opentelemetry import trace

from domain.models.workspace import BusySlot, CalendarEventResult, DriveFile, EmailSendResult

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class AccessTokenSource(Protocol):
    @property
    def access_token(self) -> Optional[str]:
        ...

    @property
    def refresh_token(self) -> Optional[str]:
        ...

    def update_tokens(self, refreshed: dict[str, Any]) -> None:
        ...


class WorkspaceError(Exception):
    """A Google API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WorkspaceAuthError(WorkspaceError):
    """No usable Google credentials."""

    def __init__(self, message: str = "Not authenticated with Google", status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code)


def build_raw_message(to: str, subject: str, body: str) -> str:
    """Encode a plain-text RFC 2822 message as base64url, as Gmail expects."""
    lines = [
        f"To: {to}",
        f"Subject: {subject}",
        "Content-Type: text/plain; charset=utf-8",
        "",
        body,
    ]
    return base64.urlsafe_b64encode("\r\n".join(lines).encode("utf-8")).decode("ascii").rstrip("=")


def _google_error(response: httpx.Response) -> str:
    try:
        data = response.json()
        message = data.get("error", {}).get("message")
    except (ValueError, AttributeError):
        message = None
    return message or f"Google API error {response.status_code}: {response.text[:200]}"


class GoogleWorkspaceClient:
    """
    HTTP client for the Google Workspace APIs used by the agent.

    Handles:
    - Sending plain-text email through Gmail
    - Searching Drive by file name
    - Creating Calendar events with a Meet link
    - Listing a day's Calendar events as busy slots
    """

    def __init__(
        self,
        auth: AccessTokenSource,
        timeout: float = 30.0,
        time_zone: str = "America/Los_Angeles",
        client: Optional[httpx.AsyncClient] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_url: str = GOOGLE_TOKEN_URL,
    ) -> None:
        """
        Initialize the Google Workspace client.

        Args:
            auth: Source of the OAuth access token
            timeout: HTTP timeout in seconds
            time_zone: IANA zone used for created events and day boundaries
            client: Optional preconfigured HTTP client
            client_id: OAuth client id used to refresh expired access tokens
            client_secret: OAuth client secret used to refresh expired access tokens
            token_url: OAuth token endpoint
        """
        self._auth = auth
        self._timeout = timeout
        self._time_zone = time_zone
        self._client = client
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        token = self._auth.access_token
        if not token:
            raise WorkspaceAuthError()
        return {"Authorization": f"Bearer {token}"}

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authorized request, refreshing the access token once on 401.

        Raises:
            WorkspaceAuthError: If no access token is available
            httpx.RequestError: If Google cannot be reached
        """
        client = await self._get_client()
        response = await client.request(method, url, headers=self._headers(), **kwargs)
        if response.status_code == 401 and await self.refresh_access_token():
            response = await client.request(method, url, headers=self._headers(), **kwargs)
        return response

    async def refresh_access_token(self) -> bool:
        """Exchange the stored refresh token for a new access token.

        Returns:
            True if a new access token was stored
        """
        refresh_token = self._auth.refresh_token
        if not refresh_token or not self._client_id or not self._client_secret:
            logger.warning("Google access token rejected and no refresh credentials are configured")
            return False

        client = await self._get_client()
        with tracer.start_as_current_span("google.oauth.refresh") as span:
            try:
                response = await client.post(
                    self._token_url,
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
            except httpx.RequestError as e:
                span.set_attribute("error", True)
                logger.error(f"Google token refresh request error: {e}")
                return False

            if response.status_code >= 400:
                span.set_attribute("error", True)
                logger.error(f"Google token refresh failed: {response.status_code} - {response.text[:200]}")
                return False

            data = response.json()
            if not data.get("access_token"):
                span.set_attribute("error", True)
                logger.error("Google token refresh response carried no access token")
                return False

        self._auth.update_tokens(data)
        logger.info("🔄 Google access token refreshed")
        return True

    async def send_email(self, to: str, subject: str, body: str) -> EmailSendResult:
        """Send a plain-text email from the connected account.

        Raises:
            WorkspaceAuthError: If no access token is available
        """
        with tracer.start_as_current_span("google.gmail.send") as span:
            span.set_attribute("email.to", to)
            try:
                response = await self._send("POST", GMAIL_SEND_URL, json={"raw": build_raw_message(to, subject, body)})
            except httpx.RequestError as e:
                span.set_attribute("error", True)
                logger.error(f"Gmail send request error: {e}")
                return EmailSendResult(success=False, error=f"Failed to send email: {e}")

            if response.status_code >= 400:
                span.set_attribute("error", True)
                error = _google_error(response)
                logger.error(f"Gmail send error: {response.status_code} - {error}")
                return EmailSendResult(success=False, error=error)

            message_id = response.json().get("id")
            logger.info(f"📧 Email sent to {to} (id={message_id})")
            return EmailSendResult(success=True, message_id=message_id)

    async def search_files(self, query: str) -> list[DriveFile]:
        """Search Drive for non-trashed files whose name contains the query.

        Raises:
            WorkspaceAuthError: If no access token is available or it was rejected
            WorkspaceError: If the Drive API call fails
        """
        escaped = query.replace("\\", "\\\\").replace("'", "\\'")
        params = {
            "q": f"name contains '{escaped}' and trashed = false",
            "fields": "files(id, name, mimeType, webViewLink)",
            "pageSize": "10",
        }

        with tracer.start_as_current_span("google.drive.search") as span:
            span.set_attribute("drive.query", query)
            data = await self._get_json(DRIVE_FILES_URL, params)
            files = [
                DriveFile(
                    id=item.get("id", ""),
                    name=item.get("name", ""),
                    mime_type=item.get("mimeType", ""),
                    link=item.get("webViewLink"),
                )
                for item in data.get("files", [])
            ]
            span.set_attribute("drive.result_count", len(files))
            logger.info(f"📁 Drive search '{query}' returned {len(files)} files")
            return files

    async def create_event(
        self,
        summary: str,
        start: str,
        end: str,
        description: Optional[str] = None,
        attendees: Optional[list[str]] = None,
    ) -> CalendarEventResult:
        """Create a primary-calendar event with a Meet link and notify attendees.

        Raises:
            WorkspaceAuthError: If no access token is available
        """
        event: dict[str, Any] = {
            "summary": summary,
            "start": {"dateTime": start, "timeZone": self._time_zone},
            "end": {"dateTime": end, "timeZone": self._time_zone},
            "conferenceData": {
                "createRequest": {
                    "requestId": f"meet-{int(time.time() * 1000)}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }
        if description:
            event["description"] = description
        if attendees:
            event["attendees"] = [{"email": email} for email in attendees]

        with tracer.start_as_current_span("google.calendar.create_event") as span:
            span.set_attribute("calendar.summary", summary)
            try:
                response = await self._send(
                    "POST",
                    CALENDAR_EVENTS_URL,
                    params={"conferenceDataVersion": "1", "sendUpdates": "all"},
                    json=event,
                )
            except httpx.RequestError as e:
                span.set_attribute("error", True)
                logger.error(f"Calendar create request error: {e}")
                return CalendarEventResult(success=False, error=f"Failed to create event: {e}")

            if response.status_code >= 400:
                span.set_attribute("error", True)
                error = _google_error(response)
                logger.error(f"Calendar create error: {response.status_code} - {error}")
                return CalendarEventResult(success=False, error=error)

            data = response.json()
            logger.info(f"📅 Event created: {summary} (id={data.get('id')})")
            return CalendarEventResult(success=True, event_id=data.get("id"), link=data.get("htmlLink"))

    async def get_availability(self, date: str) -> list[BusySlot]:
        """List the events on a day as busy slots.

        Args:
            date: ISO date (YYYY-MM-DD); a full ISO timestamp is accepted and truncated

        Raises:
            WorkspaceAuthError: If no access token is available or it was rejected
            WorkspaceError: If the date is invalid or the Calendar API call fails
        """
        try:
            day = date_type.fromisoformat(date[:10])
        except ValueError as e:
            raise WorkspaceError(f"Invalid date '{date}': expected YYYY-MM-DD") from e

        zone = ZoneInfo(self._time_zone)
        start_of_day = datetime(day.year, day.month, day.day, tzinfo=zone)
        end_of_day = start_of_day + timedelta(days=1) - timedelta(milliseconds=1)

        params = {
            "timeMin": start_of_day.isoformat(),
            "timeMax": end_of_day.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }

        with tracer.start_as_current_span("google.calendar.availability") as span:
            span.set_attribute("calendar.date", day.isoformat())
            data = await self._get_json(CALENDAR_EVENTS_URL, params)
            slots = [
                BusySlot(
                    start=(item.get("start") or {}).get("dateTime") or (item.get("start") or {}).get("date") or "",
                    end=(item.get("end") or {}).get("dateTime") or (item.get("end") or {}).get("date") or "",
                )
                for item in data.get("items", [])
            ]
            span.set_attribute("calendar.busy_count", len(slots))
            return slots

    async def _get_json(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._send("GET", url, params=params)
        except httpx.RequestError as e:
            logger.error(f"Google API request error: {e}")
            raise WorkspaceError(f"Failed to reach Google: {e}") from e

        if response.status_code == 401:
            raise WorkspaceAuthError("Google rejected the access token", status_code=401)
        if response.status_code >= 400:
            error = _google_error(response)
            logger.error(f"Google API error: {response.status_code} - {error}")
            raise WorkspaceError(error, status_code=response.status_code)
        return response.json()

    @staticmethod
    def configure(builder: "ApplicationBuilderBase", auth: AccessTokenSource) -> "GoogleWorkspaceClient":
        """Configure GoogleWorkspaceClient in the service collection.

        Args:
            builder: The application builder
            auth: Source of the OAuth access token

        Returns:
            Configured client
        """
        from application.settings import app_settings

        client = GoogleWorkspaceClient(
            auth=auth,
            timeout=app_settings.google_api_timeout,
            time_zone=app_settings.google_calendar_time_zone,
            client_id=app_settings.google_client_id,
            client_secret=app_settings.google_client_secret,
            token_url=app_settings.google_token_url,
        )
        builder.services.add_singleton(GoogleWorkspaceClient, singleton=client)
        logger.info(f"✅ Configured GoogleWorkspaceClient: time_zone={app_settings.google_calendar_time_zone}, token_refresh={bool(app_settings.google_client_id)}")
        return client
