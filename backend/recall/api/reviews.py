"""API endpoints for SM-2 spaced repetition reviews.

Provides endpoints for:
- Submitting a review rating (0-5) for an item
- Listing due items for a learner (answers withheld)
- The learner's schedule summary
- Assigning, bulk importing and retiring review items
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from recall.api.deps import Scheduler
from recall.config import get_settings
from recall.rate_limiter import limiter
from recall.models import ReviewItem
from recall.schemas.review import (
    ReviewRequest,
    ReviewResponse,
    ReviewItemResponse,
    DueItemResponse,
    DueItemsResponse,
    ScheduleResponse,
    ItemAddRequest,
    ItemImportRequest,
    ItemImportResponse,
)
from recall.services.flashcard_parser import parse_flashcards
from recall.services.scheduler_service import ItemContent, derive_item_id

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


def _item_to_response(item: ReviewItem) -> ReviewItemResponse:
    return ReviewItemResponse(
        id=item.id,
        owner_id=item.owner_id,
        prompt=item.prompt,
        answer=item.answer,
        hint=item.hint,
        tags=sorted(item.tag_set),
        ease_factor=item.ease_factor,
        interval_days=item.interval_days,
        repetitions=item.repetitions,
        next_review_at=item.next_review_at,
        last_reviewed_at=item.last_reviewed_at,
        created_at=item.created_at,
        revision=item.revision,
    )


@router.post("/review", response_model=ReviewResponse)
@limiter.limit(settings.review_rate_limit)
async def submit_review(
    request: Request,
    review: ReviewRequest,
    scheduler: Scheduler,
):
    """
    Submit a recall rating for one item.

    Quality scale (SM-2):
    - 0-2: lapse, the streak resets and the item returns tomorrow
    - 3 (Good), 4 (Easy), 5 (Perfect): the interval grows

    A 409 response means concurrent reviews kept conflicting; retry it.
    """
    result = await scheduler.submit_review(
        owner_id=review.owner_id,
        item_id=review.item_id,
        quality=review.quality,
        response_time_seconds=review.response_time_seconds,
        hints_used=review.hints_used,
    )
    return ReviewResponse(
        item=_item_to_response(result.item),
        was_correct=result.was_correct,
        ease_factor_before=result.ease_factor_before,
        interval_days_before=result.interval_days_before,
    )


@router.get("/items/due/{owner_id}", response_model=DueItemsResponse)
async def list_due_items(
    owner_id: str,
    scheduler: Scheduler,
    limit: Optional[int] = Query(None, ge=1, le=settings.due_items_max_limit),
):
    """
    Get items due for review, most overdue first.

    The answer is not included; the client reveals it separately.
    """
    due = await scheduler.due_items(owner_id, limit=limit)
    items = [
        DueItemResponse(
            id=entry.item.id,
            prompt=entry.item.prompt,
            hint=entry.item.hint,
            tags=sorted(entry.item.tag_set),
            days_overdue=entry.days_overdue,
        )
        for entry in due
    ]
    return DueItemsResponse(count=len(items), items=items)


@router.get("/schedule/{owner_id}", response_model=ScheduleResponse)
async def get_schedule(owner_id: str, scheduler: Scheduler):
    """
    Get the learner's schedule summary.

    Returns:
    - Items due today and within the next 7 days
    - Items never successfully reviewed
    - Lifetime review count and trailing-window retention
    - Per-day due counts for the coming week
    """
    summary = await scheduler.schedule_summary(owner_id)
    return ScheduleResponse(
        due_today=summary.due_today,
        due_this_week=summary.due_this_week,
        new_items=summary.new_items,
        total_reviews=summary.total_reviews,
        average_retention=summary.average_retention,
        items_by_date=summary.items_by_date,
    )


@router.post("/items/add", response_model=ReviewItemResponse, status_code=status.HTTP_201_CREATED)
async def add_item(request: ItemAddRequest, scheduler: Scheduler):
    """Assign one item to a learner. It is due immediately."""
    item_id = request.item_id or derive_item_id(request.owner_id, request.prompt)
    item = await scheduler.initialize_item(
        request.owner_id,
        item_id,
        ItemContent(
            prompt=request.prompt,
            answer=request.answer,
            hint=request.hint,
            tags=frozenset(request.tags),
        ),
    )
    return _item_to_response(item)


@router.post("/items/import", response_model=ItemImportResponse)
async def import_items(request: ItemImportRequest, scheduler: Scheduler):
    """
    Bulk import items.

    Accepts structured ``items`` and/or pasted ``text`` in Q:/A: form.
    Re-importing the same prompt does not create a duplicate.
    """
    contents = [
        ItemContent(
            prompt=entry.prompt,
            answer=entry.answer,
            hint=entry.hint,
            tags=frozenset(entry.tags),
        )
        for entry in request.items
    ]
    if request.text and request.text.strip():
        contents.extend(parse_flashcards(request.text, tags=frozenset(request.tags)))

    result = await scheduler.import_items(request.owner_id, contents)
    return ItemImportResponse(
        created=result.created,
        existing=result.existing,
        item_ids=[item.id for item in result.items],
    )


@router.delete("/items/{owner_id}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def retire_item(owner_id: str, item_id: str, scheduler: Scheduler):
    """Remove an item whose content was retired. Review history is kept."""
    await scheduler.retire_item(owner_id, item_id)
