from pydantic import BaseModel, Field, StrictInt, model_validator
from datetime import datetime
from typing import Optional


class ReviewRequest(BaseModel):
    """Request to submit a review rating for one item."""

    owner_id: str = Field(..., min_length=1, max_length=64)
    item_id: str = Field(..., min_length=1, max_length=128)
    quality: StrictInt = Field(..., ge=0, le=5, description="0=Forgot ... 3=Good ... 5=Perfect")
    response_time_seconds: float = Field(0.0, ge=0, description="Time spent before rating")
    hints_used: int = Field(0, ge=0)


class ReviewItemResponse(BaseModel):
    """Full schedule state of a review item."""

    id: str
    owner_id: str
    prompt: str
    answer: str
    hint: Optional[str]
    tags: list[str]
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_at: datetime
    last_reviewed_at: Optional[datetime]
    created_at: datetime
    revision: int

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    """Response after submitting a review."""

    item: ReviewItemResponse
    was_correct: bool
    ease_factor_before: float
    interval_days_before: int


class DueItemResponse(BaseModel):
    """Due item as shown before the answer is revealed."""

    id: str
    prompt: str
    hint: Optional[str]
    tags: list[str]
    days_overdue: int


class DueItemsResponse(BaseModel):
    count: int
    items: list[DueItemResponse]


class ScheduleResponse(BaseModel):
    due_today: int
    due_this_week: int
    new_items: int
    total_reviews: int
    average_retention: float
    items_by_date: dict[str, int]


class ItemCreate(BaseModel):
    """Content for one review item."""

    prompt: str = Field(..., min_length=1, max_length=10000)
    answer: str = Field(..., min_length=1, max_length=10000)
    hint: Optional[str] = Field(None, max_length=2000)
    tags: list[str] = Field(default_factory=list)


class ItemAddRequest(ItemCreate):
    """Assign one item to a learner."""

    owner_id: str = Field(..., min_length=1, max_length=64)
    item_id: Optional[str] = Field(None, min_length=1, max_length=128)


class ItemImportRequest(BaseModel):
    """Bulk import, either structured items or pasted Q:/A: text."""

    owner_id: str = Field(..., min_length=1, max_length=64)
    items: list[ItemCreate] = Field(default_factory=list)
    text: Optional[str] = Field(None, max_length=200000)
    tags: list[str] = Field(default_factory=list, description="Applied to cards parsed from text")

    @model_validator(mode="after")
    def require_items_or_text(self):
        if not self.items and not (self.text and self.text.strip()):
            raise ValueError("Provide either items or text")
        return self


class ItemImportResponse(BaseModel):
    created: int
    existing: int
    item_ids: list[str]
