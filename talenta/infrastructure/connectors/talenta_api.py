"""Talenta REST API integration.

This module provides an async client for the Talenta audio endpoints using
httpx, converting between the API's JSON payloads and domain entities. It
implements the ``AudioStoreProtocol`` consumed by the reconciliation use case.

Key components:
- TalentaApiConnector: Client for audio fetch, metadata, segment and publish calls
- audio_from_payload: JSON to ``AudioEntity`` conversion
- Error mapping: HTTP status codes to ``RemoteStoreError`` subclasses

Only the audio fetch is retried with backoff. Mutating calls are sent once;
recovering from a failed mutation is the caller's job.
"""

from collections.abc import Sequence
from datetime import datetime
import time
from types import TracebackType
from typing import Any, ClassVar

from attrs import define, field
import backoff
import httpx

from talenta.config import get_logger, resilient_operation, settings
from talenta.domain.entities import (
    AudioBlob,
    AudioEntity,
    AudioStatus,
    MainTrack,
    Segment,
)
from talenta.domain.exceptions import (
    AuthenticationRequired,
    ConflictOrValidationError,
    MergeFailed,
    NotFound,
    RemoteStoreError,
    Timeout,
    UploadRejected,
    ValidationError,
)
from talenta.domain.repositories import CredentialProvider

from .credentials import credential_provider_from_settings

logger = get_logger(__name__).bind(service="talenta_api")


def _is_permanent(e: Exception) -> bool:
    """Client errors and missing credentials will not succeed on retry."""
    if isinstance(e, AuthenticationRequired):
        return True
    status = getattr(e, "status_code", None)
    return status is not None and 400 <= status < 500


def _on_backoff(details: dict[str, Any]) -> None:
    logger.warning(
        f"Backing off {details['target'].__name__} (attempt {details['tries']})",
        retry_delay=f"{details['wait']:.2f}s",
    )


def _on_giveup(details: dict[str, Any]) -> None:
    exception = details.get("exception")
    logger.error(
        f"All {details['tries']} attempts failed for {details['target'].__name__}",
        elapsed_time=f"{details['elapsed']:.2f}s",
        error=str(exception) if exception else "Unknown error",
        error_type=type(exception).__name__ if exception else "Unknown",
    )


@define(slots=True)
class TalentaApiConnector:
    """Async client for the Talenta audio API.

    Can be used as an async context manager; otherwise call ``aclose()`` when
    done. Pass ``transport`` to route requests somewhere other than the
    network.
    """

    base_url: str = field(factory=lambda: settings.api.base_url)
    credentials: CredentialProvider = field(factory=credential_provider_from_settings)
    timeout: float = field(factory=lambda: settings.api.request_timeout)
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    USER_AGENT: ClassVar[str] = "Talenta/0.1.0 (Audio Editor)"

    async def __aenter__(self) -> "TalentaApiConnector":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # AudioStoreProtocol
    # -------------------------------------------------------------------------

    @resilient_operation("fetch_audio")
    @backoff.on_exception(
        backoff.expo,
        RemoteStoreError,
        max_tries=lambda: settings.api.retry_count + 1,
        factor=lambda: settings.api.retry_base_delay,
        max_value=lambda: settings.api.retry_max_delay,
        jitter=backoff.full_jitter,
        giveup=_is_permanent,
        on_backoff=_on_backoff,
        on_giveup=_on_giveup,
    )
    async def fetch_audio(self, audio_id: str) -> AudioEntity:
        """Fetch an audio entity with its ordered segments.

        Raises:
            NotFound: If the audio does not exist
        """
        response = await self._request(
            "GET", f"/api/audio/{audio_id}", ValidationError
        )
        audio = audio_from_payload(_json_or_none(response))
        logger.debug(
            f"Fetched audio with {len(audio.segments)} segments", audio_id=audio_id
        )
        return audio

    @resilient_operation("update_metadata")
    async def update_metadata(
        self, audio_id: str, fields: dict[str, object]
    ) -> AudioEntity:
        response = await self._request(
            "PATCH", f"/api/audio/{audio_id}", ValidationError, json=fields
        )
        return await self._entity_or_refetch(response, audio_id)

    @resilient_operation("upload_segments")
    async def upload_segments(
        self, audio_id: str, blobs: Sequence[AudioBlob]
    ) -> AudioEntity:
        """Upload segment payloads as one multipart request."""
        millis = int(time.time() * 1000)
        files = [
            (
                "segments",
                (
                    blob.file_name or f"segment_{millis}_{i}.{blob.extension}",
                    blob.data,
                    blob.mime_type,
                ),
            )
            for i, blob in enumerate(blobs)
        ]
        logger.info(
            f"Uploading {len(files)} segment(s)",
            audio_id=audio_id,
            total_bytes=sum(blob.size for blob in blobs),
        )
        response = await self._request(
            "POST", f"/api/audio/{audio_id}/segments", UploadRejected, files=files
        )
        return await self._entity_or_refetch(response, audio_id)

    @resilient_operation("reorder_segments")
    async def reorder_segments(
        self,
        audio_id: str,
        segment_ids: Sequence[str],
        segment_urls: Sequence[str],
    ) -> None:
        await self._request(
            "PATCH",
            f"/api/audio/{audio_id}/segments/reorder",
            ConflictOrValidationError,
            json={
                "segmentUrls": list(segment_urls),
                "segmentPublicIds": list(segment_ids),
            },
        )

    @resilient_operation("delete_segment")
    async def delete_segment(self, audio_id: str, segment_id: str) -> None:
        await self._request(
            "DELETE",
            f"/api/audio/{audio_id}/segments",
            ValidationError,
            json={"publicId": segment_id},
        )

    @resilient_operation("publish_with_merge")
    async def publish_with_merge(
        self, audio_id: str, merge: bool = True
    ) -> AudioEntity:
        """Publish the audio; with ``merge`` the server also concatenates the
        main track and segments into one file."""
        if merge:
            response = await self._request(
                "POST",
                f"/api/audio/{audio_id}/publish-merge",
                MergeFailed,
                json={"publish": True},
                server_error=MergeFailed,
            )
        else:
            response = await self._request(
                "PATCH",
                f"/api/audio/{audio_id}",
                ValidationError,
                json={"status": "published"},
            )
        return await self._entity_or_refetch(response, audio_id)

    async def ping(self) -> int:
        """Check that the API answers at all; returns the status of ``/``.

        Raises:
            Timeout: If the API does not answer in time
            RemoteStoreError: If the API cannot be reached
        """
        try:
            response = await self._get_client().get("/")
        except httpx.TimeoutException as e:
            raise Timeout(f"{self.base_url} timed out after {self.timeout:g}s") from e
        except httpx.TransportError as e:
            raise RemoteStoreError(f"Could not reach {self.base_url}: {e}") from e
        return response.status_code

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport,
                headers={"User-Agent": self.USER_AGENT},
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        token = self.credentials.get_token()
        if not token:
            raise AuthenticationRequired(
                "No API token configured. Run 'talenta login' or set TALENTA_TOKEN."
            )
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        rejected: type[RemoteStoreError],
        server_error: type[RemoteStoreError] = RemoteStoreError,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = self._auth_headers()
        try:
            response = await self._get_client().request(
                method, path, headers=headers, **kwargs
            )
        except httpx.TimeoutException as e:
            raise Timeout(f"{method} {path} timed out after {self.timeout:g}s") from e
        except httpx.TransportError as e:
            raise server_error(f"Could not reach {self.base_url}: {e}") from e

        if response.is_error:
            raise _error_for(response, rejected, server_error)
        return response

    async def _entity_or_refetch(
        self, response: httpx.Response, audio_id: str
    ) -> AudioEntity:
        """Mutation responses may or may not echo the audio; fetch if not."""
        payload = _json_or_none(response)
        if isinstance(payload, dict) and isinstance(payload.get("audio"), dict):
            return audio_from_payload(payload)
        return await self.fetch_audio(audio_id)


# -------------------------------------------------------------------------
# Payload conversion
# -------------------------------------------------------------------------


def audio_from_payload(payload: Any) -> AudioEntity:
    """Convert an ``{"audio": {...}}`` response body into an ``AudioEntity``.

    Raises:
        RemoteStoreError: If the body is not a usable audio payload
    """
    data = payload.get("audio", payload) if isinstance(payload, dict) else None
    if not isinstance(data, dict) or "id" not in data:
        raise RemoteStoreError("Malformed audio payload: missing 'audio.id'")

    audio_id = str(data["id"])
    urls = _as_list(data.get("segmentUrls"))
    ids = _as_list(data.get("segmentPublicIds"))
    if len(urls) != len(ids):
        logger.warning(
            "Segment URL and id lists differ in length, ignoring unmatched entries",
            audio_id=audio_id,
            urls=len(urls),
            ids=len(ids),
        )
    pairs = list(zip(urls, ids, strict=False))
    usable = [
        (str(url), str(remote_id)) for url, remote_id in pairs if url and remote_id
    ]
    if len(usable) != len(pairs):
        logger.warning(
            f"Ignoring {len(pairs) - len(usable)} segment(s) without URL or id",
            audio_id=audio_id,
        )
    segments = [
        Segment.from_remote(remote_id=remote_id, url=url, order=index)
        for index, (url, remote_id) in enumerate(usable)
    ]

    try:
        return AudioEntity(
            id=audio_id,
            title=data.get("title") or "",
            main_track=MainTrack(
                url=data.get("fileUrl") or "", file_name=data.get("fileName")
            ),
            description=data.get("description"),
            tags=_parse_tags(data.get("tags")),
            category=data.get("category"),
            status=AudioStatus.parse(data.get("status")),
            segments=segments,
            created_at=_parse_datetime(data.get("createdAt")),
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise RemoteStoreError(f"Malformed audio payload for {audio_id}: {e}") from e


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def _parse_tags(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return [str(t) for t in value]


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value!r}")
        return None


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _error_for(
    response: httpx.Response,
    rejected: type[RemoteStoreError],
    server_error: type[RemoteStoreError],
) -> RemoteStoreError:
    status = response.status_code
    payload = _json_or_none(response)
    detail = None
    if isinstance(payload, dict):
        detail = payload.get("message") or payload.get("error")
    request = response.request
    message = (
        f"{request.method} {request.url.path} failed ({status}): "
        f"{detail or response.reason_phrase}"
    )

    if status in (401, 403):
        return AuthenticationRequired(message, status_code=status)
    if status == 404:
        return NotFound(message, status_code=status)
    if status in (400, 409, 413, 415, 422):
        return rejected(message, status_code=status)
    return server_error(message, status_code=status)
