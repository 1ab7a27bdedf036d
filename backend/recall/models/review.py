"""Spaced-repetition review models.

A ``ReviewItem`` is one fact a learner revisits on an SM-2 schedule. Every
committed review also appends a ``ReviewEvent`` so retention can be
aggregated without replaying item state.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Text, Float, Integer, Boolean, Index, JSON, Uuid
from sqlalchemy.types import TypeDecorator, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from recall.database import Base


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps on every backend.

    SQLite has no timezone support, so values are stored as naive UTC there and
    re-tagged with UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ReviewItem(Base):
    """Per-learner schedule state for one reviewable item."""

    __tablename__ = "recall_review_items"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Content payload, opaque to the scheduler
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=list,
    )

    # SM-2 state
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=DEFAULT_EASE_FACTOR)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Optimistic concurrency counter, bumped explicitly by ReviewStore.compare_and_swap
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("idx_review_items_owner_due", "owner_id", "next_review_at"),
    )

    __mapper_args__ = {
        "version_id_col": revision,
        "version_id_generator": False,
    }

    @property
    def tag_set(self) -> frozenset[str]:
        return frozenset(self.tags or [])

    def __repr__(self) -> str:
        return (
            f"<ReviewItem {self.owner_id}/{self.id} reps={self.repetitions} "
            f"ef={self.ease_factor:.2f} interval={self.interval_days}>"
        )


class ReviewEvent(Base):
    """Append-only record of a committed review.

    Kept after the item is retired so cumulative review totals do not shrink.
    """

    __tablename__ = "recall_review_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    item_id: Mapped[str] = mapped_column(String(128), nullable=False)

    quality: Mapped[int] = mapped_column(Integer, nullable=False)
    was_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Telemetry only; never feeds the scheduling arithmetic
    response_time_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    hints_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    ease_factor_after: Mapped[float] = mapped_column(Float, nullable=False)
    interval_days_after: Mapped[int] = mapped_column(Integer, nullable=False)

    reviewed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_review_events_owner_time", "owner_id", "reviewed_at"),
        Index("idx_review_events_item", "owner_id", "item_id"),
    )

    def __repr__(self) -> str:
        return f"<ReviewEvent {self.id} item={self.item_id} quality={self.quality}>"
