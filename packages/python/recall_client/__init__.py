"""
Recall SDK - Spaced-repetition review scheduling client

Usage:
    from recall_client import RecallClient

    recall = RecallClient(base_url="http://localhost:8000")
    due = recall.due_items("learner-1")
    outcome = recall.submit_review("learner-1", due[0].id, quality=4)
"""

from .client import RecallClient
from .types import (
    RecallError,
    ReviewItem,
    ReviewOutcome,
    DueItem,
    StudySchedule,
    ImportSummary,
)

__version__ = "0.1.0"
__all__ = [
    "RecallClient",
    "RecallError",
    "ReviewItem",
    "ReviewOutcome",
    "DueItem",
    "StudySchedule",
    "ImportSummary",
]
