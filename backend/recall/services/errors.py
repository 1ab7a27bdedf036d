"""Errors raised by the review scheduler.

Validation and not-found errors are the caller's to fix. ``Contention`` is
safe to retry as a whole. Storage errors are never wrapped here.
"""


class RecallServiceError(Exception):
    """Base class for scheduler errors."""

    code = "recall_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidQuality(RecallServiceError):
    code = "invalid_quality"

    def __init__(self, quality):
        super().__init__(f"Quality must be an integer between 0 and 5, got {quality!r}")
        self.quality = quality


class ItemNotFound(RecallServiceError):
    code = "item_not_found"

    def __init__(self, owner_id: str, item_id: str):
        super().__init__(f"Review item {item_id} not found for owner {owner_id}")
        self.owner_id = owner_id
        self.item_id = item_id


class OwnerNotFound(RecallServiceError):
    code = "owner_not_found"

    def __init__(self, owner_id: str):
        super().__init__(f"No review items for owner {owner_id}")
        self.owner_id = owner_id


class RevisionConflict(RecallServiceError):
    """The stored revision moved since the item was read."""

    code = "revision_conflict"

    def __init__(self, owner_id: str, item_id: str, expected_revision: int):
        super().__init__(
            f"Review item {item_id} for owner {owner_id} changed since revision {expected_revision}"
        )
        self.owner_id = owner_id
        self.item_id = item_id
        self.expected_revision = expected_revision


class Contention(RecallServiceError):
    code = "contention"
    retryable = True

    def __init__(self, owner_id: str, item_id: str, attempts: int):
        super().__init__(
            f"Review of item {item_id} for owner {owner_id} conflicted {attempts} times; retry the request"
        )
        self.owner_id = owner_id
        self.item_id = item_id
        self.attempts = attempts


class FlashcardParseError(RecallServiceError):
    code = "flashcard_parse_error"
