"""
Recall SDK - Type Definitions
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class RecallError(Exception):
    """Error returned by the Recall API"""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        code: Optional[str] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"RecallError({self.status_code}, {self.code!r}, {self.message!r})"


@dataclass
class ReviewItem:
    """Full schedule state of a review item"""
    id: str
    owner_id: str
    prompt: str
    answer: str
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_at: str
    created_at: str
    revision: int
    hint: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    last_reviewed_at: Optional[str] = None


@dataclass
class ReviewOutcome:
    """Result of submitting a review"""
    item: ReviewItem
    was_correct: bool
    ease_factor_before: float
    interval_days_before: int


@dataclass
class DueItem:
    """A due item; the answer is withheld until revealed"""
    id: str
    prompt: str
    days_overdue: int
    hint: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class StudySchedule:
    """Schedule summary for a learner"""
    due_today: int
    due_this_week: int
    new_items: int
    total_reviews: int
    average_retention: float
    items_by_date: Dict[str, int] = field(default_factory=dict)


@dataclass
class ImportSummary:
    """Result of a bulk import"""
    created: int
    existing: int
    item_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportSummary":
        return cls(
            created=data.get("created", 0),
            existing=data.get("existing", 0),
            item_ids=data.get("item_ids", []),
        )
