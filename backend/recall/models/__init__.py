from recall.models.review import ReviewItem, ReviewEvent, DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR

__all__ = [
    "ReviewItem",
    "ReviewEvent",
    "DEFAULT_EASE_FACTOR",
    "MIN_EASE_FACTOR",
]
