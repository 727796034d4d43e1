"""Reconciliation of optimistic segment edits with the Talenta API.

The controller applies reorders and deletes to the local ``SegmentStore``
immediately, then asks the remote store to confirm. When the remote store
rejects (or times out), the authoritative state is re-fetched and replaces
the optimistic one wholesale. Pending segments are uploaded in place: on
success they keep their playlist position and gain a remote identity; on
failure they stay pending so the user can retry.

Mutating operations for one audio entity are single-flight: while one is
awaiting confirmation, another is rejected with ``OperationInProgress``.
Controllers for different audio entities share nothing.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Iterable
from contextlib import asynccontextmanager
import time
from typing import TypeVar

import attrs
from attrs import define, field

from talenta.config import get_logger, settings
from talenta.domain.entities import (
    AudioBlob,
    AudioEntity,
    AudioStatus,
    RecordingResult,
    Segment,
    SegmentProvenance,
)
from talenta.domain.exceptions import (
    DeleteFailed,
    InvalidReorderRange,
    MergeFailed,
    NotFound,
    OperationInProgress,
    RemoteStoreError,
    ReorderFailed,
    Timeout,
    UploadFailed,
)
from talenta.domain.playlist import SegmentStore
from talenta.domain.repositories import AudioStoreProtocol, ObjectUrlRegistry

T = TypeVar("T")

logger = get_logger(__name__).bind(service="reconciliation")


@define(slots=True)
class ReconciliationController:
    """Coordinates optimistic local segment edits with remote confirmation.

    Attributes:
        audio: Last known authoritative audio entity
        store: Local segment order, including pending segments
        remote: Remote audio store
        object_urls: Registry for pending-segment preview URLs
        timeout: Seconds before a remote call is treated as failed
    """

    audio: AudioEntity
    store: SegmentStore
    remote: AudioStoreProtocol
    object_urls: ObjectUrlRegistry | None = None
    timeout: float = field(factory=lambda: settings.api.request_timeout)
    _lock: asyncio.Lock = field(factory=asyncio.Lock, init=False, repr=False)

    @classmethod
    async def load(
        cls,
        audio_id: str,
        remote: AudioStoreProtocol,
        object_urls: ObjectUrlRegistry | None = None,
        timeout: float | None = None,
    ) -> "ReconciliationController":
        """Fetch an audio entity and build a controller over its segments."""
        effective_timeout = settings.api.request_timeout if timeout is None else timeout
        audio = await _with_timeout(remote.fetch_audio(audio_id), effective_timeout)
        return cls(
            audio=audio,
            store=SegmentStore(audio.segments),
            remote=remote,
            object_urls=object_urls,
            timeout=effective_timeout,
        )

    @property
    def busy(self) -> bool:
        """Whether a mutating operation is awaiting remote confirmation."""
        return self._lock.locked()

    # -------------------------------------------------------------------------
    # Local-only operations
    # -------------------------------------------------------------------------

    def add_recording(self, result: RecordingResult) -> Segment:
        """Append a finished recording as a pending segment."""
        return self._add_pending(result.blob, SegmentProvenance.RECORDED)

    def add_upload(self, blob: AudioBlob) -> Segment:
        """Append a selected file as a pending segment."""
        return self._add_pending(blob, SegmentProvenance.UPLOADED)

    def discard_pending(self, index: int) -> Segment:
        """Drop a pending segment locally; no remote call is made.

        Raises:
            IndexOutOfRange: If ``index`` is not a playlist position
            ValueError: If the segment is already persisted
            OperationInProgress: If a remote operation is awaiting confirmation
        """
        self._reject_if_busy("discard_pending")
        segment = self.store[index]
        if not segment.is_pending:
            raise ValueError(
                f"Segment {segment.remote_id} is persisted; delete it instead"
            )
        removed = self.store.remove(index)
        self._revoke(removed.local_url)
        return removed

    # -------------------------------------------------------------------------
    # Reconciled operations
    # -------------------------------------------------------------------------

    async def reorder(self, from_index: int, to_index: int) -> tuple[Segment, ...]:
        """Swap two persisted segments and submit the new order.

        Returns:
            The confirmed local snapshot

        Raises:
            InvalidReorderRange: If either index is not a persisted segment
            ReorderFailed: If the remote store rejected the order; local state
                was replaced by a fresh fetch
        """
        async with self._single_flight("reorder"):
            self._check_reorder_range(from_index, to_index)

            before = self.store.snapshot()
            self.store.swap(from_index, to_index)
            ordered = self.store.persisted

            logger.info(
                "Submitting segment order",
                audio_id=self.audio.id,
                from_index=from_index,
                to_index=to_index,
            )
            try:
                await self._call(
                    self.remote.reorder_segments(
                        self.audio.id,
                        [s.remote_id for s in ordered if s.remote_id is not None],
                        [s.url for s in ordered if s.url is not None],
                    )
                )
            except RemoteStoreError as e:
                await self._restore_authoritative(before)
                raise ReorderFailed(f"Failed to reorder segments: {e}", cause=e) from e

            self.audio = self.audio.with_segments(ordered)
            return self.store.snapshot()

    async def delete(self, segment_id: str) -> Segment:
        """Remove a persisted segment optimistically and confirm remotely.

        Raises:
            NotFound: If no local segment has ``segment_id``; nothing changes
            DeleteFailed: If the remote delete failed; local state was
                replaced by a fresh fetch
        """
        async with self._single_flight("delete"):
            index = self.store.index_of_remote(segment_id)
            if index is None:
                raise NotFound(f"Segment {segment_id} not found", status_code=404)

            before = self.store.snapshot()
            removed = self.store.remove(index)

            logger.info("Deleting segment", audio_id=self.audio.id, segment_id=segment_id)
            try:
                await self._call(self.remote.delete_segment(self.audio.id, segment_id))
            except RemoteStoreError as e:
                await self._restore_authoritative(before)
                raise DeleteFailed(f"Failed to delete segment: {e}", cause=e) from e

            self.audio = self.audio.with_segments(self.store.persisted)
            return removed

    async def persist_pending(self, segment: Segment) -> Segment:
        """Upload one pending segment and replace it in place once stored.

        Raises:
            UploadFailed: If the upload failed; the segment stays pending
        """
        async with self._single_flight("persist_pending"):
            persisted = await self._persist([segment])
            return persisted[0]

    async def persist_all_pending(self) -> list[Segment]:
        """Upload every pending segment in a single request."""
        async with self._single_flight("persist_all_pending"):
            return await self._persist(self.store.pending)

    async def save_metadata(
        self,
        title: str | None = None,
        description: str | None = None,
        tags: Iterable[str] | None = None,
        category: str | None = None,
    ) -> AudioEntity:
        """Update title, description, tags and category.

        Raises:
            ValidationError: If the API rejects the fields
        """
        async with self._single_flight("save_metadata"):
            fields = _metadata_fields(title, description, tags, category)
            if fields:
                await self._update_metadata(fields)
            return self.audio

    async def save_as_draft(
        self,
        title: str | None = None,
        description: str | None = None,
        tags: Iterable[str] | None = None,
        category: str | None = None,
    ) -> AudioEntity:
        """Upload pending segments, save metadata and mark the audio as draft."""
        async with self._single_flight("save_as_draft"):
            await self._persist(self.store.pending)
            fields = _metadata_fields(title, description, tags, category)
            fields["status"] = "draft"
            await self._update_metadata(fields)
            self.audio = self.audio.with_status(AudioStatus.DRAFT)
            return self.audio

    async def publish_with_merge(self) -> AudioEntity:
        """Upload pending segments, then publish and ask the server to merge.

        The merged file is produced by the server; locally the audio is only
        marked as published.

        Raises:
            UploadFailed: If pending segments could not be uploaded first
            MergeFailed: If publishing or merging failed
        """
        async with self._single_flight("publish_with_merge"):
            await self._persist(self.store.pending)

            logger.info("Publishing with merge", audio_id=self.audio.id)
            try:
                published = await self._call(
                    self.remote.publish_with_merge(self.audio.id, merge=True)
                )
            except MergeFailed:
                raise
            except RemoteStoreError as e:
                raise MergeFailed(
                    f"Failed to publish and merge: {e}", status_code=e.status_code
                ) from e

            self.audio = published.with_status(AudioStatus.PUBLISHED)
            return self.audio

    async def refresh(self) -> AudioEntity:
        """Re-fetch the audio and rebuild the store, keeping pending segments."""
        async with self._single_flight("refresh"):
            fresh = await self._call(self.remote.fetch_audio(self.audio.id))
            self._adopt(fresh)
            return fresh

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _single_flight(self, operation: str) -> AsyncIterator[None]:
        self._reject_if_busy(operation)
        async with self._lock:
            yield

    def _reject_if_busy(self, operation: str) -> None:
        if self._lock.locked():
            logger.warning(
                f"Rejected {operation}: another operation is in flight",
                audio_id=self.audio.id,
            )
            raise OperationInProgress(
                f"Cannot {operation.replace('_', ' ')} while another change "
                f"to audio {self.audio.id} is being saved"
            )

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await _with_timeout(awaitable, self.timeout)

    def _check_reorder_range(self, from_index: int, to_index: int) -> None:
        size = len(self.store)
        for index in (from_index, to_index):
            if not 0 <= index < size or self.store[index].is_pending:
                raise InvalidReorderRange(
                    f"Cannot reorder position {index}: only saved segments "
                    f"can be reordered"
                )

    def _add_pending(self, blob: AudioBlob, provenance: SegmentProvenance) -> Segment:
        if blob.file_name is None:
            millis = int(time.time() * 1000)
            blob = attrs.evolve(
                blob,
                file_name=f"{provenance.file_prefix}_{millis}_{len(self.store)}.{blob.extension}",
            )
        local_url = self.object_urls.create(blob) if self.object_urls else None
        segment = self.store.append(Segment.pending(blob, provenance, local_url))
        logger.debug(
            "Added pending segment",
            audio_id=self.audio.id,
            position=segment.order,
            provenance=provenance.value,
        )
        return segment

    async def _persist(self, segments: list[Segment]) -> list[Segment]:
        if not segments:
            return []
        for segment in segments:
            if not segment.is_pending:
                raise ValueError(f"Segment {segment.remote_id} is already persisted")
            if self.store.index_of_key(segment.key) is None:
                raise ValueError(f"Segment {segment.key} is not in the playlist")

        known_ids = {s.remote_id for s in self.store.persisted} | set(
            self.audio.segment_ids
        )

        logger.info(
            f"Uploading {len(segments)} pending segment(s)", audio_id=self.audio.id
        )
        try:
            fresh = await self._call(
                self.remote.upload_segments(
                    self.audio.id, [s.blob for s in segments if s.blob is not None]
                )
            )
        except RemoteStoreError as e:
            logger.warning(f"Upload failed, segments stay pending: {e}")
            raise UploadFailed(f"Failed to upload segments: {e}", cause=e) from e

        created = [s for s in fresh.segments if s.remote_id not in known_ids]
        if any(s.remote_id is None or s.url is None for s in created):
            error = RemoteStoreError("Upload response contains segments without an id")
            logger.warning(f"Upload failed, segments stay pending: {error}")
            raise UploadFailed(f"Failed to upload segments: {error}", cause=error)
        if len(created) != len(segments):
            logger.warning(
                "Upload response did not match pending segments, resynchronizing",
                expected=len(segments),
                created=len(created),
            )
            uploaded_keys = {s.key for s in segments}
            for segment in segments:
                self._revoke(segment.local_url)
            self.audio = fresh
            self.store.reset(
                [
                    *fresh.segments,
                    *(p for p in self.store.pending if p.key not in uploaded_keys),
                ]
            )
            return created

        persisted: list[Segment] = []
        for pending, stored in zip(segments, created, strict=True):
            index = self.store.index_of_key(pending.key)
            replacement = pending.persisted(stored.remote_id, stored.url)
            if index is None:
                replacement = self.store.append(replacement)
            else:
                replacement = self.store.replace(index, replacement)
            self._revoke(pending.local_url)
            persisted.append(replacement)

        self.audio = fresh
        return persisted

    async def _update_metadata(self, fields: dict[str, object]) -> None:
        logger.info("Saving metadata", audio_id=self.audio.id, fields=sorted(fields))
        updated = await self._call(self.remote.update_metadata(self.audio.id, fields))
        # Metadata responses do not change the local segment order
        self.audio = attrs.evolve(updated, segments=self.audio.segments)

    async def _restore_authoritative(self, fallback: tuple[Segment, ...]) -> None:
        try:
            fresh = await self._call(self.remote.fetch_audio(self.audio.id))
        except RemoteStoreError as e:
            logger.error(
                f"Could not re-fetch audio after a rejected change, "
                f"restoring previous local order: {e}",
                audio_id=self.audio.id,
            )
            self.store.reset(fallback)
            return
        logger.info("Restored authoritative segment order", audio_id=self.audio.id)
        self._adopt(fresh)

    def _adopt(self, fresh: AudioEntity) -> None:
        self.audio = fresh
        self.store.reset([*fresh.segments, *self.store.pending])

    def _revoke(self, url: str | None) -> None:
        if url is not None and self.object_urls is not None:
            self.object_urls.revoke(url)


async def _with_timeout(awaitable: Awaitable[T], seconds: float) -> T:
    try:
        async with asyncio.timeout(seconds):
            return await awaitable
    except TimeoutError as e:
        raise Timeout(f"Remote call timed out after {seconds:g}s") from e


def _metadata_fields(
    title: str | None,
    description: str | None,
    tags: Iterable[str] | None,
    category: str | None,
) -> dict[str, object]:
    fields: dict[str, object] = {}
    if title is not None:
        fields["title"] = title
    if description is not None:
        fields["description"] = description
    if tags is not None:
        fields["tags"] = sorted(set(tags))
    if category is not None:
        fields["category"] = category
    return fields
