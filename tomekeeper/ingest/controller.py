"""Queue controller: owns the queued items of one session and drives them.

Each submitted batch gets its own worker pool fed by an ``asyncio.Queue``.
With the default single worker, items run strictly one at a time in
submission order (files first, then URLs). When every item of the batch is
terminal the world assembler runs exactly once.

Observers either poll :meth:`QueueController.snapshot` or register a
listener with :meth:`QueueController.subscribe`. Listeners receive plain
dict events:

* ``queue``: the full item list and counts (after submit / delete / clear)
* ``item``: one item, after each of its status changes
* ``warning``: a non-fatal problem, such as a world that could not be created
* ``batch_complete``: world id plus completed / failed counts for a batch
* ``retry_complete``: the outcome of a manual retry run
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import uuid
from typing import Awaitable, Callable, Iterable, Optional, Sequence, Union

from tomekeeper.config import Settings, get_settings
from tomekeeper.errors import BatchValidationError, WorldAssemblyError
from tomekeeper.ingest.assembler import WorldAssembler
from tomekeeper.ingest.items import FileSource, ItemStatus, QueueItem, Source
from tomekeeper.ingest.pipeline import ItemPipeline
from tomekeeper.models import World
from tomekeeper.repositories import RulebookRepository, WorldRepository
from tomekeeper.schemas import BatchMeta
from tomekeeper.services.extractor import Extractor
from tomekeeper.services.uploader import Uploader
from tomekeeper.utils.logging_config import BatchAdapter, get_logger

_logger = get_logger("tomekeeper.ingest.controller")

Listener = Callable[[dict], Union[None, Awaitable[None]]]


@dataclasses.dataclass
class BatchResult:
    batch_id: str
    world: Optional[World]
    completed_ids: list[str]        # rulebook ids of completed items
    failed_ids: list[str]           # queue item ids
    warning: Optional[str] = None


@dataclasses.dataclass
class BatchHandle:
    batch_id: str
    item_ids: list[str]
    meta: BatchMeta
    task: Optional[asyncio.Task] = None
    world_id: Optional[str] = None
    # Work queue of the running batch; None once the batch stops taking items
    queue: Optional[asyncio.Queue] = None

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    async def wait(self) -> BatchResult:
        return await self.task


class QueueController:
    def __init__(
        self,
        rulebooks: RulebookRepository,
        worlds: WorldRepository,
        uploader: Uploader,
        extractor: Extractor,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._pipeline = ItemPipeline(rulebooks, uploader, extractor, self._settings)
        self._assembler = WorldAssembler(worlds, self._settings)

        self._items: dict[str, QueueItem] = {}
        self._batches: dict[str, BatchHandle] = {}
        self._selected: dict[str, None] = {}
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[QueueItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> Optional[QueueItem]:
        return self._items.get(item_id)

    def snapshot(self) -> list[dict]:
        return [item.to_dict() for item in self._items.values()]

    def counts(self) -> dict[str, int]:
        items = self._items.values()
        completed = sum(1 for i in items if i.status is ItemStatus.COMPLETED)
        failed = sum(1 for i in items if i.status is ItemStatus.FAILED)
        pending = sum(1 for i in items if i.status is ItemStatus.PENDING)
        return {
            "total": len(self._items),
            "completed": completed,
            "failed": failed,
            "pending": pending,
            "in_progress": len(self._items) - completed - failed - pending,
        }

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _publish(self, event: dict) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _logger.warning("Queue listener failed on %s event", event.get("type"), exc_info=True)

    async def _publish_queue(self) -> None:
        await self._publish({"type": "queue", "items": self.snapshot(), "counts": self.counts()})

    async def _on_status(self, item: QueueItem) -> None:
        # Items removed by delete/clear finish silently
        if self._items.get(item.id) is item:
            await self._publish({"type": "item", "item": item.to_dict()})

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_batch(self, sources: Sequence[Source], meta: BatchMeta) -> BatchHandle:
        """Validate, enqueue and start processing a batch.

        Raises:
            BatchValidationError: nothing to process, or the batch is missing
                its game system or world name. Nothing is enqueued.
        """
        files: list[FileSource] = []
        urls: list[str] = []
        for source in sources or ():
            if isinstance(source, FileSource):
                files.append(source)
            elif isinstance(source, str):
                if source.strip():
                    urls.append(source.strip())
            else:
                raise BatchValidationError(f"Unsupported source type: {type(source).__name__}")

        missing = []
        if not files and not urls:
            missing.append("files/URLs")
        if meta.game_system is None:
            missing.append("game system")
        if not meta.world_name.strip():
            missing.append("world name")
        if missing:
            raise BatchValidationError(f"Please provide {', '.join(missing)}")

        batch_id = uuid.uuid4().hex
        items = [QueueItem.from_source(batch_id, source) for source in [*files, *urls]]
        for item in items:
            self._items[item.id] = item

        handle = BatchHandle(batch_id=batch_id, item_ids=[i.id for i in items], meta=meta)
        handle.queue = self._work_queue(items)
        self._batches[batch_id] = handle

        BatchAdapter(_logger, batch_id).info(
            "Batch submitted: %d file(s), %d URL(s) for world %r",
            len(files), len(urls), meta.world_name,
        )
        await self._publish_queue()

        handle.task = self._spawn(self._run_batch(handle, items))
        return handle

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def join(self) -> None:
        """Wait until every batch and retry run started so far has finished."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    @staticmethod
    def _work_queue(items: Iterable[QueueItem]) -> asyncio.Queue:
        queue: asyncio.Queue[QueueItem] = asyncio.Queue()
        for item in items:
            queue.put_nowait(item)
        return queue

    async def _drain(self, queue: asyncio.Queue) -> None:
        """Run queued pending items through the pipeline on a bounded worker pool.

        Items put on *queue* while the pool is running are picked up by it.
        """

        async def worker() -> None:
            while True:
                try:
                    item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    # Deleted or cleared while waiting
                    if self._items.get(item.id) is not item or item.status is not ItemStatus.PENDING:
                        continue
                    meta = self._batches[item.batch_id].meta
                    await self._pipeline.run(item, meta, self._on_status)
                finally:
                    queue.task_done()

        size = max(1, min(self._settings.queue_workers, queue.qsize()))
        await asyncio.gather(*(worker() for _ in range(size)))

    async def _run_batch(self, handle: BatchHandle, items: list[QueueItem]) -> BatchResult:
        log = BatchAdapter(_logger, handle.batch_id)
        queue = handle.queue
        # Retries can land on the queue after the last worker has exited
        while not queue.empty():
            await self._drain(queue)
        # No await between the empty check and this; later retries attach to the world
        handle.queue = None

        completed = [i.result_rulebook_id for i in items if i.status is ItemStatus.COMPLETED]
        failed = [i.id for i in items if i.status is ItemStatus.FAILED]
        log.info("Batch processed: %d completed, %d failed", len(completed), len(failed))

        world: Optional[World] = None
        warning: Optional[str] = None
        try:
            world = await self._assembler.assemble(handle.meta, completed)
        except WorldAssemblyError as exc:
            warning = str(exc)
            log.warning("World assembly failed: %s", exc)
        else:
            if world is None:
                warning = "No rulebooks were ingested; world not created"

        if warning:
            await self._publish({"type": "warning", "batch_id": handle.batch_id, "message": warning})

        handle.world_id = world.id if world else None
        await self._publish({
            "type": "batch_complete",
            "batch_id": handle.batch_id,
            "world_id": handle.world_id,
            "completed": len(completed),
            "failed": len(failed),
        })
        return BatchResult(
            batch_id=handle.batch_id,
            world=world,
            completed_ids=completed,
            failed_ids=failed,
            warning=warning,
        )

    async def _run_retry(self, items: list[QueueItem]) -> None:
        by_batch: dict[str, list[QueueItem]] = {}
        for item in items:
            by_batch.setdefault(item.batch_id, []).append(item)

        for batch_id, batch_items in by_batch.items():
            await self._drain(self._work_queue(batch_items))
            completed = [i.result_rulebook_id for i in batch_items if i.status is ItemStatus.COMPLETED]

            handle = self._batches[batch_id]
            if handle.task is not None and not handle.task.done():
                await asyncio.wait({handle.task})

            if completed and handle.world_id:
                try:
                    await self._assembler.attach(handle.world_id, completed)
                except WorldAssemblyError as exc:
                    BatchAdapter(_logger, batch_id).warning("Could not attach retried rulebooks: %s", exc)
                    await self._publish({"type": "warning", "batch_id": batch_id, "message": str(exc)})

            await self._publish({
                "type": "retry_complete",
                "batch_id": batch_id,
                "world_id": handle.world_id,
                "completed": len(completed),
                "failed": sum(1 for i in batch_items if i.status is ItemStatus.FAILED),
            })

    # ------------------------------------------------------------------
    # Selection and bulk operations
    # ------------------------------------------------------------------

    @property
    def selected(self) -> list[str]:
        return [i for i in self._selected if i in self._items and self._items[i].is_selectable]

    def select(self, item_ids: Iterable[str]) -> list[str]:
        """Select the given items; those not pending/failed are ignored."""
        for item_id in item_ids:
            item = self._items.get(item_id)
            if item is not None and item.is_selectable:
                self._selected[item_id] = None
        return self.selected

    def select_all(self) -> list[str]:
        return self.select(list(self._items))

    def clear_selection(self) -> None:
        self._selected.clear()

    def _targets(self, item_ids: Optional[Iterable[str]]) -> list[QueueItem]:
        ids = self.selected if item_ids is None else list(dict.fromkeys(item_ids))
        return [
            self._items[i] for i in ids
            if i in self._items and self._items[i].is_selectable
        ]

    async def retry_selected(self, item_ids: Optional[Iterable[str]] = None) -> list[str]:
        """Reset failed items to pending and re-run the full pipeline on them.

        Items whose batch is still running go back on that batch's queue and
        are reported in its ``batch_complete`` event. Items of finished batches
        run in a separate retry run that attaches them to the batch's world.

        Defaults to the current selection. Returns the ids actually retried.
        """
        targets = [i for i in self._targets(item_ids) if i.status is ItemStatus.FAILED]
        self.clear_selection()
        if not targets:
            return []

        for item in targets:
            item.reset()
        for item in targets:
            await self._on_status(item)

        late: list[QueueItem] = []
        for item in targets:
            queue = self._batches[item.batch_id].queue
            if queue is not None:
                queue.put_nowait(item)
            else:
                late.append(item)

        _logger.info("Retrying %d failed item(s), %d in a running batch", len(targets), len(targets) - len(late))
        if late:
            self._spawn(self._run_retry(late))
        return [i.id for i in targets]

    async def delete_selected(self, item_ids: Optional[Iterable[str]] = None) -> list[str]:
        """Remove pending/failed items from the queue. Persisted records are untouched."""
        targets = self._targets(item_ids)
        self.clear_selection()
        for item in targets:
            del self._items[item.id]
        if targets:
            await self._publish_queue()
        return [i.id for i in targets]

    async def clear_all(self) -> None:
        """Empty the queue. In-flight items finish but are no longer tracked."""
        self._items.clear()
        self.clear_selection()
        await self._publish_queue()
