"""Durable per-learner review state with optimistic-concurrency writes."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func, case, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from recall.models import ReviewItem, ReviewEvent
from recall.services.errors import ItemNotFound, OwnerNotFound, RevisionConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventCounts:
    """Review event tally for retention aggregation."""
    total: int
    successful: int


class ReviewStore:
    """Storage for ReviewItem state and the ReviewEvent log.

    ``compare_and_swap`` is the only path that changes schedule state. Reads
    always go back to the database so a retry never sees a stale identity map.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, owner_id: str, item_id: str) -> Optional[ReviewItem]:
        result = await self.db.execute(
            select(ReviewItem)
            .where(ReviewItem.owner_id == owner_id)
            .where(ReviewItem.id == item_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, owner_id: str, item_id: str) -> ReviewItem:
        item = await self.find(owner_id, item_id)
        if item is None:
            raise ItemNotFound(owner_id, item_id)
        return item

    async def has_items(self, owner_id: str) -> bool:
        count = await self.db.scalar(
            select(func.count()).select_from(ReviewItem).where(ReviewItem.owner_id == owner_id)
        )
        return bool(count)

    async def due_items(
        self,
        owner_id: str,
        as_of: datetime,
        limit: int,
    ) -> list[ReviewItem]:
        """Items with ``next_review_at <= as_of``, most overdue first.

        An empty list is a valid answer; ``OwnerNotFound`` is raised only when
        the owner has no items at all.
        """
        result = await self.db.execute(
            select(ReviewItem)
            .where(ReviewItem.owner_id == owner_id)
            .where(ReviewItem.next_review_at <= as_of)
            .order_by(ReviewItem.next_review_at.asc(), ReviewItem.id.asc())
            .limit(limit)
        )
        items = list(result.scalars().all())
        if not items and not await self.has_items(owner_id):
            raise OwnerNotFound(owner_id)
        return items

    async def next_review_times(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
    ) -> list[datetime]:
        """``next_review_at`` values falling in ``[start, end)``."""
        result = await self.db.execute(
            select(ReviewItem.next_review_at)
            .where(ReviewItem.owner_id == owner_id)
            .where(ReviewItem.next_review_at >= start)
            .where(ReviewItem.next_review_at < end)
            .order_by(ReviewItem.next_review_at.asc())
        )
        return list(result.scalars().all())

    async def count_new_items(self, owner_id: str) -> int:
        count = await self.db.scalar(
            select(func.count())
            .select_from(ReviewItem)
            .where(ReviewItem.owner_id == owner_id)
            .where(ReviewItem.repetitions == 0)
        )
        return count or 0

    async def compare_and_swap(
        self,
        item: ReviewItem,
        expected_revision: int,
        event: Optional[ReviewEvent] = None,
    ) -> None:
        """Commit ``item`` only if its stored revision is still ``expected_revision``.

        On success the revision moves to ``expected_revision + 1`` and ``event``
        is appended in the same transaction. On conflict nothing is written.
        """
        owner_id, item_id = item.owner_id, item.id
        if item.revision != expected_revision:
            await self.db.rollback()
            raise RevisionConflict(owner_id, item_id, expected_revision)

        item.revision = expected_revision + 1
        if event is not None:
            self.db.add(event)

        try:
            await self.db.commit()
        except StaleDataError:
            await self.db.rollback()
            logger.warning(
                f"Revision conflict on review item {owner_id}/{item_id} "
                f"(expected revision {expected_revision})"
            )
            raise RevisionConflict(owner_id, item_id, expected_revision) from None

    async def add(self, item: ReviewItem) -> bool:
        """Insert a new item. Returns False if the key already exists."""
        self.db.add(item)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return False
        return True

    async def delete(self, owner_id: str, item_id: str) -> None:
        result = await self.db.execute(
            delete(ReviewItem)
            .where(ReviewItem.owner_id == owner_id)
            .where(ReviewItem.id == item_id)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ItemNotFound(owner_id, item_id)
        await self.db.commit()

    async def count_events_since(self, owner_id: str, since: datetime) -> EventCounts:
        result = await self.db.execute(
            select(
                func.count(ReviewEvent.id).label("total"),
                func.coalesce(
                    func.sum(case((ReviewEvent.was_correct, 1), else_=0)), 0
                ).label("successful"),
            )
            .where(ReviewEvent.owner_id == owner_id)
            .where(ReviewEvent.reviewed_at >= since)
        )
        row = result.one()
        return EventCounts(total=row.total or 0, successful=int(row.successful or 0))

    async def rollback(self) -> None:
        await self.db.rollback()
