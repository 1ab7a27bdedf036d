"""SM-2 Spaced Repetition Scheduler.

Update rule applied to every rated review (quality 0-5):

- quality < 3 (lapse): repetitions = 0, interval = 1 day
- quality >= 3: repetitions += 1; interval = 1, 6, then round(interval × EF)
- EF' = EF + (0.1 - (5 - q) × (0.08 + (5 - q) × 0.02)), floored at 1.3

Writes go through ReviewStore.compare_and_swap. A revision conflict re-reads
the item and recomputes from scratch, up to ``review_max_attempts`` times.

References:
- https://super-memory.com/english/ol/sm2.htm
"""
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from recall.config import Settings, get_settings
from recall.models import ReviewItem, ReviewEvent, DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR
from recall.services.errors import InvalidQuality, RevisionConflict, Contention
from recall.services.review_store import ReviewStore

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ITEM_ID_NAMESPACE = uuid.UUID("6f1c4a52-9d0e-4c1b-8a57-3e2f0b9d7c11")


class Quality(IntEnum):
    """SM-2 recall quality scale (0-5)."""
    FORGOT = 0   # Complete blackout
    ALMOST = 1   # Wrong, remembered after seeing the answer
    HARD = 2     # Wrong, but the answer seemed easy
    GOOD = 3     # Correct with difficulty
    EASY = 4     # Correct after hesitation
    PERFECT = 5  # Perfect recall


SUCCESS_THRESHOLD = Quality.GOOD


@dataclass(frozen=True)
class ScheduleUpdate:
    """New SM-2 state for one review."""
    repetitions: int
    interval_days: int
    ease_factor: float


@dataclass
class ItemContent:
    """Content payload for a review item, opaque to the scheduler."""
    prompt: str
    answer: str
    hint: Optional[str] = None
    tags: frozenset[str] = field(default_factory=frozenset)


@dataclass
class ReviewResult:
    """Result of a committed review."""
    item: ReviewItem
    was_correct: bool
    ease_factor_before: float
    interval_days_before: int
    attempts: int


@dataclass
class DueItem:
    """A due item with how many whole days it is past its review time."""
    item: ReviewItem
    days_overdue: int


@dataclass
class ScheduleSummary:
    """Aggregate view of a learner's review schedule."""
    due_today: int
    due_this_week: int
    new_items: int
    total_reviews: int
    average_retention: float
    items_by_date: dict[str, int]


@dataclass
class ImportResult:
    created: int
    existing: int
    items: list[ReviewItem]


def validate_quality(quality) -> int:
    """Return ``quality`` as an int in [0, 5] or raise InvalidQuality."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    if not Quality.FORGOT <= quality <= Quality.PERFECT:
        raise InvalidQuality(quality)
    return int(quality)


def sm2_update(
    quality: int,
    repetitions: int,
    interval_days: int,
    ease_factor: float,
) -> ScheduleUpdate:
    """Apply one SM-2 review to the given state.

    The interval for the third and later successes grows by the ease factor
    held *before* this review; the ease factor is then updated for every
    review, lapse or not.
    """
    if quality < SUCCESS_THRESHOLD:
        new_repetitions = 0
        new_interval = 1
    else:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            new_interval = max(1, round(interval_days * ease_factor))

    distance = 5 - quality
    new_ease = ease_factor + (0.1 - distance * (0.08 + distance * 0.02))
    new_ease = max(MIN_EASE_FACTOR, new_ease)

    return ScheduleUpdate(
        repetitions=new_repetitions,
        interval_days=new_interval,
        ease_factor=new_ease,
    )


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def days_overdue(next_review_at: datetime, as_of: datetime) -> int:
    """Whole days between the scheduled review and ``as_of``, never negative."""
    elapsed = as_utc(as_of) - as_utc(next_review_at)
    return max(0, math.floor(elapsed / timedelta(days=1)))


def derive_item_id(owner_id: str, prompt: str) -> str:
    """Stable item id for content imported without one."""
    return str(uuid.uuid5(ITEM_ID_NAMESPACE, f"{owner_id}:{prompt.strip()}"))


class SchedulerService:
    """SM-2 review scheduling on top of ReviewStore."""

    def __init__(
        self,
        db: AsyncSession,
        store: Optional[ReviewStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.store = store or ReviewStore(db)
        self.settings = settings or get_settings()

    async def submit_review(
        self,
        owner_id: str,
        item_id: str,
        quality: int,
        response_time_seconds: float = 0.0,
        hints_used: int = 0,
        now: Optional[datetime] = None,
    ) -> ReviewResult:
        """Rate one item and persist its new schedule.

        Args:
            owner_id: The learner the item belongs to
            item_id: The item being reviewed
            quality: 0-5 recall quality; 3 and above counts as correct
            response_time_seconds: Telemetry only
            hints_used: Telemetry only
            now: Optional timestamp (defaults to now)

        Returns:
            ReviewResult with the committed item state

        Raises:
            InvalidQuality: quality outside 0-5, checked before any read
            ItemNotFound: no such item for this owner
            Contention: every attempt lost the revision race
        """
        quality = validate_quality(quality)
        max_attempts = self.settings.review_max_attempts

        for attempt in range(1, max_attempts + 1):
            reviewed_at = as_utc(now) if now else datetime.now(timezone.utc)
            try:
                item = await self.store.get(owner_id, item_id)
                expected_revision = item.revision
                ease_before = item.ease_factor
                interval_before = item.interval_days

                update = sm2_update(
                    quality,
                    repetitions=item.repetitions,
                    interval_days=item.interval_days,
                    ease_factor=item.ease_factor,
                )
                item.repetitions = update.repetitions
                item.interval_days = update.interval_days
                item.ease_factor = update.ease_factor
                item.next_review_at = reviewed_at + timedelta(days=update.interval_days)
                item.last_reviewed_at = reviewed_at

                event = ReviewEvent(
                    owner_id=owner_id,
                    item_id=item_id,
                    quality=quality,
                    was_correct=quality >= SUCCESS_THRESHOLD,
                    response_time_seconds=response_time_seconds,
                    hints_used=hints_used,
                    ease_factor_after=update.ease_factor,
                    interval_days_after=update.interval_days,
                    reviewed_at=reviewed_at,
                )
                await self.store.compare_and_swap(item, expected_revision, event)
            except RevisionConflict:
                logger.warning(
                    f"Review of {owner_id}/{item_id} lost revision race "
                    f"(attempt {attempt}/{max_attempts}), re-reading"
                )
                continue
            except BaseException:
                # Discard the computed state; nothing partial may be committed
                await self.store.rollback()
                raise

            logger.info(
                f"Review: item={owner_id}/{item_id}, quality={quality}, "
                f"EF:{ease_before:.2f}→{item.ease_factor:.2f}, "
                f"interval:{interval_before}→{item.interval_days}d, "
                f"next={item.next_review_at.isoformat()}, revision={item.revision}"
            )
            return ReviewResult(
                item=item,
                was_correct=quality >= SUCCESS_THRESHOLD,
                ease_factor_before=ease_before,
                interval_days_before=interval_before,
                attempts=attempt,
            )

        logger.warning(
            f"Review of {owner_id}/{item_id} abandoned after {max_attempts} conflicting attempts"
        )
        raise Contention(owner_id, item_id, max_attempts)

    async def due_items(
        self,
        owner_id: str,
        as_of: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[DueItem]:
        """Get items due at ``as_of``, most overdue first."""
        as_of = as_utc(as_of) if as_of else datetime.now(timezone.utc)
        if limit is None:
            limit = self.settings.due_items_default_limit
        limit = max(0, min(limit, self.settings.due_items_max_limit))

        items = await self.store.due_items(owner_id, as_of, limit)
        return [
            DueItem(item=item, days_overdue=days_overdue(item.next_review_at, as_of))
            for item in items
        ]

    async def schedule_summary(
        self,
        owner_id: str,
        as_of: Optional[datetime] = None,
    ) -> ScheduleSummary:
        """Get due counts, new item count and retention for a learner."""
        as_of = as_utc(as_of) if as_of else datetime.now(timezone.utc)
        today = start_of_day(as_of)
        tomorrow = today + timedelta(days=1)
        week_end = today + timedelta(days=7)

        upcoming = await self.store.next_review_times(owner_id, today, week_end)

        items_by_date = {
            (today + timedelta(days=offset)).date().isoformat(): 0
            for offset in range(7)
        }
        for moment in upcoming:
            items_by_date[as_utc(moment).date().isoformat()] += 1

        due_today = sum(1 for moment in upcoming if as_utc(moment) < tomorrow)

        new_items = await self.store.count_new_items(owner_id)
        lifetime = await self.store.count_events_since(owner_id, EPOCH)
        window = await self.store.count_events_since(
            owner_id, as_of - timedelta(days=self.settings.retention_window_days)
        )
        average_retention = window.successful / window.total if window.total else 0.0

        return ScheduleSummary(
            due_today=due_today,
            due_this_week=len(upcoming),
            new_items=new_items,
            total_reviews=lifetime.total,
            average_retention=average_retention,
            items_by_date=items_by_date,
        )

    async def _initialize(
        self,
        owner_id: str,
        item_id: str,
        content: ItemContent,
        now: datetime,
    ) -> tuple[ReviewItem, bool]:
        existing = await self.store.find(owner_id, item_id)
        if existing is not None:
            return existing, False

        item = ReviewItem(
            owner_id=owner_id,
            id=item_id,
            prompt=content.prompt,
            answer=content.answer,
            hint=content.hint,
            tags=sorted(set(content.tags)),
            ease_factor=DEFAULT_EASE_FACTOR,
            interval_days=0,
            repetitions=0,
            next_review_at=now,
            revision=0,
            created_at=now,
        )
        if not await self.store.add(item):
            # Lost an insert race; the other writer's item stands
            return await self.store.get(owner_id, item_id), False
        return item, True

    async def initialize_item(
        self,
        owner_id: str,
        item_id: str,
        content: ItemContent,
        now: Optional[datetime] = None,
    ) -> ReviewItem:
        """Create an immediately-due item with default SM-2 state.

        Existing items are returned unchanged.
        """
        now = as_utc(now) if now else datetime.now(timezone.utc)
        item, created = await self._initialize(owner_id, item_id, content, now)
        if created:
            logger.info(f"Initialized review item {owner_id}/{item_id}")
        return item

    async def import_items(
        self,
        owner_id: str,
        contents: Iterable[ItemContent],
        now: Optional[datetime] = None,
    ) -> ImportResult:
        """Initialize many items, deriving ids from the prompt text."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        created = existing = 0
        items: list[ReviewItem] = []

        for content in contents:
            item_id = derive_item_id(owner_id, content.prompt)
            item, was_created = await self._initialize(owner_id, item_id, content, now)
            items.append(item)
            if was_created:
                created += 1
            else:
                existing += 1

        logger.info(f"Imported {created} review items for {owner_id} ({existing} already present)")
        return ImportResult(created=created, existing=existing, items=items)

    async def retire_item(self, owner_id: str, item_id: str) -> None:
        """Delete an item whose content was retired. Its review events are kept."""
        await self.store.delete(owner_id, item_id)
        logger.info(f"Retired review item {owner_id}/{item_id}")
