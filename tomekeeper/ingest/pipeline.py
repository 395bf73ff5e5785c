"""Per-item ingestion pipeline.

One run takes a ``pending`` item to ``completed`` or ``failed``:

1. dedup check against persisted titles
2. ``uploading`` (file, via the uploader) or ``linking`` (URL, used as is)
3. rulebook record created in the ``uploaded`` phase
4. ``extracting`` via the extractor
5. record updated with the normalized sections
6. ``completed``

Errors never escape :meth:`ItemPipeline.run`; they end up on the item.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from tomekeeper.config import Settings, get_settings
from tomekeeper.errors import (
    ExtractionError,
    IngestError,
    InvalidTransitionError,
    RecordNotFoundError,
    RetryExhaustedError,
    UploadError,
)
from tomekeeper.ingest.dedup import DedupGuard
from tomekeeper.ingest.items import FileSource, ItemStatus, QueueItem, SourceKind
from tomekeeper.ingest.retry import with_retry
from tomekeeper.models import Rulebook
from tomekeeper.repositories import RulebookRepository
from tomekeeper.schemas import EXTRACTION_SCHEMA, BatchMeta
from tomekeeper.services.extractor import Extractor
from tomekeeper.services.uploader import Uploader
from tomekeeper.utils.logging_config import get_logger

logger = get_logger("tomekeeper.ingest.pipeline")

# Called after every status change of the item being processed
StatusCallback = Callable[[QueueItem], Awaitable[None]]


class ItemPipeline:
    def __init__(
        self,
        rulebooks: RulebookRepository,
        uploader: Uploader,
        extractor: Extractor,
        settings: Optional[Settings] = None,
        dedup: Optional[DedupGuard] = None,
    ):
        self._rulebooks = rulebooks
        self._uploader = uploader
        self._extractor = extractor
        self._settings = settings or get_settings()
        self._dedup = dedup or DedupGuard(rulebooks)

    async def run(self, item: QueueItem, meta: BatchMeta, on_status: StatusCallback) -> None:
        item.attempt += 1
        extra = {"batch_id": item.batch_id, "item_id": item.id, "attempt": item.attempt}
        logger.info("Processing %s", item.name, extra=extra)

        try:
            await self._run_stages(item, meta, on_status)
        except IngestError as exc:
            logger.warning("%s failed: %s", item.name, exc, extra=extra)
            item.mark_failed(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error while processing %s", item.name, extra=extra)
            item.mark_failed(str(exc) or type(exc).__name__)
        else:
            logger.info("%s completed", item.name, extra={**extra, "rulebook_id": item.result_rulebook_id})

        await on_status(item)

    async def _run_stages(self, item: QueueItem, meta: BatchMeta, on_status: StatusCallback) -> None:
        # 1. Dedup
        await self._dedup.check_title(item.derived_title, own_record_id=item.rulebook_id)

        # 2. Upload / link
        item.transition(item.transfer_status)
        await on_status(item)
        source_url = await self._transfer(item)

        # 3. Persist the unextracted record
        rulebook = await self._persist_uploaded(item, meta, source_url)
        item.rulebook_id = rulebook.id

        # 4. Extract
        item.transition(ItemStatus.EXTRACTING)
        await on_status(item)
        content = await self._extract(rulebook.id, source_url)

        # 5. Store the sections
        await self._rulebooks.mark_extracted(rulebook.id, content)

        # 6. Done
        item.mark_completed(rulebook.id)

    async def _transfer(self, item: QueueItem) -> str:
        if item.source_kind is SourceKind.URL:
            return item.source

        source = item.source
        if not isinstance(source, FileSource):
            raise InvalidTransitionError(f"{item.name} is queued as a file but carries no file data")
        try:
            return await with_retry(
                lambda: self._uploader.upload(source.data, source.filename, source.content_type),
                max_attempts=self._settings.retry_max_attempts,
                base_delay=self._settings.retry_base_delay,
                timeout=self._settings.upload_timeout_seconds,
                label="Upload",
            )
        except RetryExhaustedError as exc:
            raise UploadError(str(exc)) from exc

    async def _persist_uploaded(self, item: QueueItem, meta: BatchMeta, source_url: str) -> Rulebook:
        if item.rulebook_id is not None:
            existing = await self._rulebooks.get(item.rulebook_id)
            if existing is not None:
                return await self._rulebooks.mark_uploaded(existing.id, source_url)

        return await self._rulebooks.create(
            title=item.derived_title,
            game_system=meta.game_system.value,
            category=meta.category.value,
            source_url=source_url,
        )

    async def _extract(self, rulebook_id: str, source_url: str):
        try:
            return await with_retry(
                lambda: self._extractor.extract(source_url, EXTRACTION_SCHEMA),
                max_attempts=self._settings.retry_max_attempts,
                base_delay=self._settings.retry_base_delay,
                timeout=self._settings.extract_timeout_seconds,
                label="Content extraction",
            )
        except RetryExhaustedError as exc:
            # The record stays in the uploaded phase for later inspection
            try:
                await self._rulebooks.mark_extraction_failed(rulebook_id, str(exc))
            except Exception:
                logger.warning("Could not store extraction error on rulebook %s", rulebook_id, exc_info=True)
            raise ExtractionError(str(exc)) from exc

    async def extract_existing(self, rulebook_id: str) -> Rulebook:
        """Re-run extraction for a persisted record left in the ``uploaded`` phase."""
        rulebook = await self._rulebooks.get(rulebook_id)
        if rulebook is None:
            raise RecordNotFoundError(f"Rulebook {rulebook_id} not found")

        content = await self._extract(rulebook.id, rulebook.source_url)
        return await self._rulebooks.mark_extracted(rulebook.id, content)
