"""Queue items and their status machine.

A :class:`QueueItem` lives only as long as the queue session that owns it.
Its status moves strictly forward::

    pending -> uploading | linking -> extracting -> completed
         \\______________\\________________\\______-> failed

``failed`` is the only status that can move back (to ``pending``), and only
through a manual retry.
"""

from __future__ import annotations

import dataclasses
import uuid
from enum import Enum
from typing import Optional, Union
from urllib.parse import urlparse

from tomekeeper.errors import InvalidTransitionError


class ItemStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    LINKING = "linking"
    EXTRACTING = "extracting"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceKind(str, Enum):
    FILE = "file"
    URL = "url"


TERMINAL_STATUSES = frozenset({ItemStatus.COMPLETED, ItemStatus.FAILED})
SELECTABLE_STATUSES = frozenset({ItemStatus.PENDING, ItemStatus.FAILED})

_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.UPLOADING, ItemStatus.LINKING, ItemStatus.FAILED}),
    ItemStatus.UPLOADING: frozenset({ItemStatus.EXTRACTING, ItemStatus.FAILED}),
    ItemStatus.LINKING: frozenset({ItemStatus.EXTRACTING, ItemStatus.FAILED}),
    ItemStatus.EXTRACTING: frozenset({ItemStatus.COMPLETED, ItemStatus.FAILED}),
    ItemStatus.FAILED: frozenset({ItemStatus.PENDING}),
    ItemStatus.COMPLETED: frozenset(),
}


@dataclasses.dataclass(frozen=True)
class FileSource:
    """An uploaded file held in memory so a retry can upload it again."""
    filename: str
    data: bytes = dataclasses.field(repr=False)
    content_type: str = "application/pdf"


Source = Union[FileSource, str]


# ---------------------------------------------------------------------------
# Title derivation
# ---------------------------------------------------------------------------

def _strip_pdf(name: str) -> str:
    if name.lower().endswith(".pdf"):
        return name[:-4]
    return name


def title_from_filename(filename: str) -> str:
    return _strip_pdf(filename.strip())


def title_from_url(url: str) -> str:
    parsed = urlparse(url)
    tail = parsed.path.rstrip("/").rsplit("/", 1)[-1] if parsed.path else ""
    title = _strip_pdf(tail)
    if title:
        return title
    return f"Rulebook from {parsed.hostname or url}"


def display_name_for_url(url: str) -> str:
    tail = url.rsplit("/", 1)[-1]
    return tail or url[:50] + "..."


def parse_url_list(text: str) -> list[str]:
    """Split newline-separated URL input, dropping blank lines."""
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


# ---------------------------------------------------------------------------
# QueueItem
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class QueueItem:
    batch_id: str
    source_kind: SourceKind
    source: Source
    name: str
    derived_title: str
    id: str = dataclasses.field(default_factory=lambda: uuid.uuid4().hex)
    status: ItemStatus = ItemStatus.PENDING
    error: Optional[str] = None
    result_rulebook_id: Optional[str] = None
    # Record created for this item, kept even when extraction fails so a
    # retry can resume it instead of colliding with its own title.
    rulebook_id: Optional[str] = None
    attempt: int = 0

    @classmethod
    def from_source(cls, batch_id: str, source: Source) -> "QueueItem":
        if isinstance(source, FileSource):
            return cls(
                batch_id=batch_id,
                source_kind=SourceKind.FILE,
                source=source,
                name=source.filename,
                derived_title=title_from_filename(source.filename),
            )
        url = source.strip()
        return cls(
            batch_id=batch_id,
            source_kind=SourceKind.URL,
            source=url,
            name=display_name_for_url(url),
            derived_title=title_from_url(url),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_selectable(self) -> bool:
        return self.status in SELECTABLE_STATUSES

    @property
    def transfer_status(self) -> ItemStatus:
        """The stage-2 status for this item's source kind."""
        return ItemStatus.UPLOADING if self.source_kind is SourceKind.FILE else ItemStatus.LINKING

    def transition(self, status: ItemStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Item {self.id} cannot move from {self.status.value} to {status.value}"
            )
        if status is ItemStatus.FAILED or status is ItemStatus.COMPLETED:
            raise InvalidTransitionError("Use mark_failed() / mark_completed() for terminal states")
        if status is ItemStatus.UPLOADING or status is ItemStatus.LINKING:
            if status is not self.transfer_status:
                raise InvalidTransitionError(
                    f"{self.source_kind.value} items use {self.transfer_status.value}, not {status.value}"
                )
        self.status = status
        self.error = None

    def mark_failed(self, error: str) -> None:
        if ItemStatus.FAILED not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"Item {self.id} cannot fail from {self.status.value}")
        self.status = ItemStatus.FAILED
        self.error = error or "Unknown error occurred"
        self.result_rulebook_id = None

    def mark_completed(self, rulebook_id: str) -> None:
        if ItemStatus.COMPLETED not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"Item {self.id} cannot complete from {self.status.value}")
        self.status = ItemStatus.COMPLETED
        self.error = None
        self.result_rulebook_id = rulebook_id

    def reset(self) -> None:
        """Back to ``pending`` for a manual retry."""
        if ItemStatus.PENDING not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"Item {self.id} cannot be retried from {self.status.value}")
        self.status = ItemStatus.PENDING
        self.error = None
        self.result_rulebook_id = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "name": self.name,
            "source_kind": self.source_kind.value,
            "url": self.source if self.source_kind is SourceKind.URL else None,
            "derived_title": self.derived_title,
            "status": self.status.value,
            "error": self.error,
            "result_rulebook_id": self.result_rulebook_id,
            "rulebook_id": self.rulebook_id,
            "attempt": self.attempt,
        }
