"""Gmail API client implementation.

This module provides the Gmail side of the sync: paged message id listing,
per-message metadata fetches and the label catalog.

Notes:
    The Google API client is synchronous. This project wraps those calls using
    `asyncio.to_thread` so the rest of the codebase can remain async-friendly.
    httplib2 connections are not thread-safe, so every worker thread executes
    requests on its own authorized HTTP object.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any

import structlog
from googleapiclient.errors import HttpError

from gmail_size_stats.config import Settings
from gmail_size_stats.exceptions import AuthenticationError, ConfigurationError, GmailAPIError
from gmail_size_stats.gmail.parsing import (
    classify_http_status,
    labels_from_response,
    message_to_metadata,
)
from gmail_size_stats.models import FetchStatus, LabelRecord, MessagePage, MetadataResult

logger = structlog.get_logger()

METADATA_FIELDS = "internalDate,labelIds,sizeEstimate"


class GmailClient:
    """Gmail API client for the mailbox sync.

    This client handles authentication, message id listing, metadata
    fetches and label retrieval.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize Gmail client.

        Args:
            settings: Application settings. If None, uses default settings.
        """
        from gmail_size_stats.config import get_settings

        self.settings = settings or get_settings()
        self._service: Any | None = None
        self._credentials: Any | None = None
        self._local = threading.local()
        logger.info("gmail_client_initialized")

    async def authenticate(self) -> None:
        """Authenticate with Gmail API using OAuth2.

        Raises:
            ConfigurationError: If the client secret file is missing.
            AuthenticationError: If authentication fails.
        """

        if self._service is not None:
            return

        credentials_path = Path(self.settings.gmail_credentials_path)
        token_path = Path(self.settings.gmail_token_path)
        scope = self.settings.gmail_scope

        if not credentials_path.exists():
            raise ConfigurationError(
                f"Gmail client secret file not found: {credentials_path}. "
                "Download it from the Google Cloud Console."
            )

        logger.info(
            "gmail_authentication_started",
            credentials_path=str(credentials_path),
            token_path=str(token_path),
            scope=scope,
        )

        try:
            self._service, self._credentials = await asyncio.to_thread(
                self._build_service,
                credentials_path,
                token_path,
                scope,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_authentication_failed", error=str(exc))
            raise AuthenticationError(str(exc)) from exc

        logger.info("gmail_authentication_completed")

    async def list_message_ids(
        self,
        query: str | None = None,
        page_token: str | None = None,
    ) -> MessagePage:
        """List one page of message ids.

        Args:
            query: Gmail search query string (e.g. ``after:1700000000``).
            page_token: Continuation token from the previous page.

        Returns:
            The ids on this page and the token for the next one.

        Raises:
            GmailAPIError: If the API request fails.
        """

        await self._ensure_authenticated()

        logger.debug("listing_message_ids", query=query, page_token=page_token)

        try:
            response = await asyncio.to_thread(self._list_messages_sync, query, page_token)
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_list_messages_failed", error=str(exc))
            raise GmailAPIError(str(exc)) from exc

        ids = [m["id"] for m in response.get("messages", []) or [] if m.get("id")]
        return MessagePage(ids=ids, next_page_token=response.get("nextPageToken") or None)

    async def get_message_metadata(self, message_id: str) -> MetadataResult:
        """Fetch internalDate, labelIds and sizeEstimate for one message.

        Failures are classified instead of raised so that workers can apply
        a policy per outcome.

        Args:
            message_id: The Gmail message ID.

        Returns:
            A result tagged with its FetchStatus.
        """

        await self._ensure_authenticated()

        try:
            raw = await asyncio.to_thread(self._get_message_sync, message_id)
        except HttpError as exc:
            status = getattr(getattr(exc, "resp", None), "status", None)
            try:
                status = int(status) if status is not None else None
            except (TypeError, ValueError):
                status = None
            kind = classify_http_status(status, getattr(exc, "content", None))
            logger.debug(
                "gmail_get_message_failed",
                message_id=message_id,
                status=status,
                classification=kind.value,
            )
            return MetadataResult.failure(message_id, kind, str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.debug("gmail_get_message_failed", message_id=message_id, error=str(exc))
            return MetadataResult.failure(message_id, FetchStatus.OTHER, str(exc))

        return MetadataResult.success(message_id, message_to_metadata(raw))

    async def list_labels(self) -> list[LabelRecord]:
        """Return the complete label catalog.

        Raises:
            GmailAPIError: If the API request fails.
        """

        await self._ensure_authenticated()

        try:
            response = await asyncio.to_thread(self._list_labels_sync)
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_list_labels_failed", error=str(exc))
            raise GmailAPIError(str(exc)) from exc

        return labels_from_response(response)

    async def _ensure_authenticated(self) -> None:
        if self._service is None:
            raise AuthenticationError(
                "Gmail client is not authenticated. Call await GmailClient.authenticate() first."
            )

    def _build_service(self, credentials_path: Path, token_path: Path, scope: str) -> tuple[Any, Any]:
        # Imported lazily to keep import-time cost low and tests fast.
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from google_auth_oauthlib.flow import InstalledAppFlow
        from googleapiclient.discovery import build

        creds: Credentials | None = None
        if token_path.exists():
            creds = Credentials.from_authorized_user_file(str(token_path), scopes=[scope])

        if creds is not None and creds.expired and creds.refresh_token:
            creds.refresh(Request())

        if creds is None or not creds.valid:
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes=[scope])
            creds = flow.run_local_server(port=0)
            token_path.parent.mkdir(parents=True, exist_ok=True)
            token_path.write_text(creds.to_json(), encoding="utf-8")
            print(f"Saving credential file to: {token_path}")

        # cache_discovery=False prevents writing discovery docs to disk.
        return build("gmail", "v1", credentials=creds, cache_discovery=False), creds

    def _execute(self, request: Any) -> dict[str, Any]:
        if self._credentials is None:
            return request.execute()

        http = getattr(self._local, "http", None)
        if http is None:
            import google_auth_httplib2
            import httplib2

            http = google_auth_httplib2.AuthorizedHttp(self._credentials, http=httplib2.Http())
            self._local.http = http
        return request.execute(http=http)

    def _list_messages_sync(self, query: str | None, page_token: str | None) -> dict[str, Any]:
        assert self._service is not None
        request = (
            self._service.users()
            .messages()
            .list(
                userId=self.settings.gmail_user_id,
                maxResults=self.settings.gmail_page_size,
                q=query,
                includeSpamTrash=self.settings.gmail_include_spam_trash,
                pageToken=page_token,
            )
        )
        return self._execute(request)

    def _get_message_sync(self, message_id: str) -> dict[str, Any]:
        assert self._service is not None
        request = (
            self._service.users()
            .messages()
            .get(
                userId=self.settings.gmail_user_id,
                id=message_id,
                format="minimal",
                fields=METADATA_FIELDS,
            )
        )
        return self._execute(request)

    def _list_labels_sync(self) -> dict[str, Any]:
        assert self._service is not None
        request = self._service.users().labels().list(userId=self.settings.gmail_user_id)
        return self._execute(request)
