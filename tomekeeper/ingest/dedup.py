"""Title dedup check run immediately before an item is uploaded.

This is check-then-act with no transaction around it: two items in the same
batch, or two concurrent batches, can both pass. The unique constraint on
``rulebooks.title`` is the real guarantee; the repository raises
:class:`DuplicateTitleError` when an insert loses that race.
"""

from __future__ import annotations

from typing import Optional

from tomekeeper.errors import DuplicateTitleError
from tomekeeper.repositories import RulebookRepository


class DedupGuard:
    def __init__(self, rulebooks: RulebookRepository):
        self._rulebooks = rulebooks

    async def check_title(self, title: str, own_record_id: Optional[str] = None) -> None:
        """Raise :class:`DuplicateTitleError` if *title* is already taken.

        ``own_record_id`` is the record a previous run of the same queue item
        created; finding that record is not a duplicate.
        """
        existing = await self._rulebooks.find_by_title(title)
        if existing is not None and existing.id != own_record_id:
            raise DuplicateTitleError(title)
