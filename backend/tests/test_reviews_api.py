"""Tests for /spaced-repetition endpoints."""
import pytest
from unittest.mock import AsyncMock, patch

from recall.config import get_settings
from recall.services.errors import Contention, InvalidQuality
from recall.services.scheduler_service import SchedulerService, derive_item_id

OWNER_ID = "learner-api"
PREFIX = "/spaced-repetition"


async def add_item(client, item_id="card-1", **overrides):
    body = {
        "owner_id": OWNER_ID,
        "item_id": item_id,
        "prompt": "What is the SM-2 minimum ease factor?",
        "answer": "1.3",
        "hint": "It is a floor",
        "tags": ["sm2"],
    }
    body.update(overrides)
    return await client.post(f"{PREFIX}/items/add", json=body)


class TestItemsAPI:
    """Tests for item assignment, import and retirement."""

    @pytest.mark.asyncio
    async def test_add_item(self, client):
        response = await add_item(client)

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == "card-1"
        assert data["ease_factor"] == 2.5
        assert data["interval_days"] == 0
        assert data["repetitions"] == 0
        assert data["revision"] == 0
        assert data["last_reviewed_at"] is None
        assert data["tags"] == ["sm2"]

    @pytest.mark.asyncio
    async def test_add_item_derives_id(self, client):
        response = await add_item(client, item_id=None, prompt="Capital of Peru?")

        assert response.status_code == 201
        assert response.json()["id"] == derive_item_id(OWNER_ID, "Capital of Peru?")

    @pytest.mark.asyncio
    async def test_add_item_empty_prompt(self, client):
        response = await add_item(client, prompt="")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_import_text(self, client):
        response = await client.post(
            f"{PREFIX}/items/import",
            json={
                "owner_id": OWNER_ID,
                "text": "Q: Capital of Peru?\nA: Lima\n\nQuestion: Capital of Chile?\nAnswer: Santiago",
                "tags": ["geo"],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["created"] == 2
        assert data["existing"] == 0
        assert len(data["item_ids"]) == 2

        again = await client.post(
            f"{PREFIX}/items/import",
            json={
                "owner_id": OWNER_ID,
                "items": [{"prompt": "Capital of Peru?", "answer": "Lima"}],
            },
        )
        assert again.json()["created"] == 0
        assert again.json()["existing"] == 1

    @pytest.mark.asyncio
    async def test_import_unparseable_text(self, client):
        response = await client.post(
            f"{PREFIX}/items/import",
            json={"owner_id": OWNER_ID, "text": "no cards in here"},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "flashcard_parse_error"

    @pytest.mark.asyncio
    async def test_import_requires_items_or_text(self, client):
        response = await client.post(f"{PREFIX}/items/import", json={"owner_id": OWNER_ID})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_retire_item(self, client):
        await add_item(client)

        response = await client.delete(f"{PREFIX}/items/{OWNER_ID}/card-1")
        assert response.status_code == 204

        response = await client.delete(f"{PREFIX}/items/{OWNER_ID}/card-1")
        assert response.status_code == 404
        assert response.json()["code"] == "item_not_found"


class TestReviewAPI:
    """Tests for review submission and due/schedule queries."""

    @pytest.mark.asyncio
    async def test_due_items_hide_answer(self, client):
        await add_item(client)

        response = await client.get(f"{PREFIX}/items/due/{OWNER_ID}")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        entry = data["items"][0]
        assert entry["id"] == "card-1"
        assert entry["hint"] == "It is a floor"
        assert entry["days_overdue"] == 0
        assert "answer" not in entry

    @pytest.mark.asyncio
    async def test_due_items_unknown_owner(self, client):
        response = await client.get(f"{PREFIX}/items/due/ghost")

        assert response.status_code == 404
        assert response.json()["code"] == "owner_not_found"

    @pytest.mark.asyncio
    async def test_due_items_limit_validation(self, client):
        response = await client.get(f"{PREFIX}/items/due/{OWNER_ID}", params={"limit": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_due_items_limit_follows_configured_max(self, client):
        await add_item(client)
        max_limit = get_settings().due_items_max_limit

        response = await client.get(f"{PREFIX}/items/due/{OWNER_ID}", params={"limit": max_limit})
        assert response.status_code == 200
        assert response.json()["count"] == 1

        response = await client.get(f"{PREFIX}/items/due/{OWNER_ID}", params={"limit": max_limit + 1})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_submit_review(self, client):
        await add_item(client)

        response = await client.post(
            f"{PREFIX}/review",
            json={
                "owner_id": OWNER_ID,
                "item_id": "card-1",
                "quality": 5,
                "response_time_seconds": 4.2,
                "hints_used": 1,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["was_correct"] is True
        assert data["ease_factor_before"] == 2.5
        assert data["interval_days_before"] == 0
        assert data["item"]["repetitions"] == 1
        assert data["item"]["interval_days"] == 1
        assert data["item"]["ease_factor"] == pytest.approx(2.6)
        assert data["item"]["revision"] == 1

        due = await client.get(f"{PREFIX}/items/due/{OWNER_ID}")
        assert due.json()["count"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quality", [-1, 6, "five", True, False, 3.0, "4", None])
    async def test_submit_review_invalid_quality(self, client, quality):
        await add_item(client)

        response = await client.post(
            f"{PREFIX}/review",
            json={"owner_id": OWNER_ID, "item_id": "card-1", "quality": quality},
        )
        assert response.status_code == 422

        # Rejected ratings must not be recorded
        schedule = await client.get(f"{PREFIX}/schedule/{OWNER_ID}")
        assert schedule.json()["total_reviews"] == 0
        assert schedule.json()["new_items"] == 1

    @pytest.mark.asyncio
    async def test_invalid_quality_error_mapping(self, client):
        with patch.object(SchedulerService, "submit_review", AsyncMock(side_effect=InvalidQuality(7))):
            response = await client.post(
                f"{PREFIX}/review",
                json={"owner_id": OWNER_ID, "item_id": "card-1", "quality": 3},
            )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_quality"
        assert response.json()["retryable"] is False

    @pytest.mark.asyncio
    async def test_submit_review_unknown_item(self, client):
        await add_item(client)

        response = await client.post(
            f"{PREFIX}/review",
            json={"owner_id": OWNER_ID, "item_id": "missing", "quality": 4},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "item_not_found"

    @pytest.mark.asyncio
    async def test_contention_is_retryable_conflict(self, client):
        error = Contention(OWNER_ID, "card-1", 5)
        with patch.object(SchedulerService, "submit_review", AsyncMock(side_effect=error)):
            response = await client.post(
                f"{PREFIX}/review",
                json={"owner_id": OWNER_ID, "item_id": "card-1", "quality": 4},
            )

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "contention"
        assert data["retryable"] is True

    @pytest.mark.asyncio
    async def test_schedule(self, client):
        await add_item(client, item_id="card-1")
        await add_item(client, item_id="card-2")
        await client.post(
            f"{PREFIX}/review",
            json={"owner_id": OWNER_ID, "item_id": "card-1", "quality": 1},
        )

        response = await client.get(f"{PREFIX}/schedule/{OWNER_ID}")

        assert response.status_code == 200
        data = response.json()
        assert data["total_reviews"] == 1
        assert data["average_retention"] == 0.0
        assert data["new_items"] == 2
        assert data["due_this_week"] == 2
        assert len(data["items_by_date"]) == 7

    @pytest.mark.asyncio
    async def test_schedule_without_reviews(self, client):
        response = await client.get(f"{PREFIX}/schedule/ghost")

        assert response.status_code == 200
        assert response.json()["average_retention"] == 0.0


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
