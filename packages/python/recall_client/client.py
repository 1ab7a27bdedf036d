"""
Recall SDK - Main Client

Usage:
    from recall_client import RecallClient

    recall = RecallClient(base_url="http://localhost:8000")

    # Assign a flashcard to a learner
    item = recall.add_item("learner-1", prompt="Capital of Peru?", answer="Lima")

    # Review whatever is due
    for due in recall.due_items("learner-1"):
        outcome = recall.submit_review("learner-1", due.id, quality=4)

    # Schedule summary
    schedule = recall.schedule("learner-1")
"""

from typing import Any, Dict, List, Optional
import httpx

from .types import (
    RecallError,
    ReviewItem,
    ReviewOutcome,
    DueItem,
    StudySchedule,
    ImportSummary,
)


DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0
API_PREFIX = "/spaced-repetition"


class RecallClient:
    """
    Recall SDK Client

    Args:
        base_url: API base URL (default: http://localhost:8000)
        api_key: Optional bearer token forwarded to the API gateway
        timeout: Request timeout in seconds (default: 30)
        http_client: Optional preconfigured httpx.Client

    Example:
        >>> from recall_client import RecallClient
        >>> recall = RecallClient()
        >>> recall.submit_review("learner-1", "card-1", quality=5).was_correct
        True
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._client = http_client or httpx.Client(headers=self._headers, timeout=timeout)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make an API request"""
        url = f"{self.base_url}{path}"

        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = self._client.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=self._headers,
            )
        except httpx.TimeoutException:
            raise RecallError("Request timeout", 408, "TIMEOUT", retryable=True)
        except httpx.RequestError as e:
            raise RecallError(str(e), 0, "NETWORK_ERROR", retryable=True)

        if not response.is_success:
            error_data = response.json() if response.content else {}
            detail = error_data.get("detail", response.reason_phrase)
            raise RecallError(
                message=detail if isinstance(detail, str) else str(detail),
                status_code=response.status_code,
                code=error_data.get("code"),
                retryable=bool(error_data.get("retryable", False)),
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def submit_review(
        self,
        owner_id: str,
        item_id: str,
        quality: int,
        response_time_seconds: float = 0.0,
        hints_used: int = 0,
    ) -> ReviewOutcome:
        """
        Submit a recall rating.

        Args:
            owner_id: The learner
            item_id: The reviewed item
            quality: 0-5; 3 and above counts as correct
            response_time_seconds: Time spent before rating
            hints_used: Number of hints revealed

        Returns:
            ReviewOutcome with the updated item
        """
        result = self._request("POST", f"{API_PREFIX}/review", json={
            "owner_id": owner_id,
            "item_id": item_id,
            "quality": quality,
            "response_time_seconds": response_time_seconds,
            "hints_used": hints_used,
        })
        return ReviewOutcome(
            item=ReviewItem(**result["item"]),
            was_correct=result["was_correct"],
            ease_factor_before=result["ease_factor_before"],
            interval_days_before=result["interval_days_before"],
        )

    def due_items(self, owner_id: str, limit: Optional[int] = None) -> List[DueItem]:
        """List items due for review, most overdue first."""
        result = self._request(
            "GET", f"{API_PREFIX}/items/due/{owner_id}", params={"limit": limit}
        )
        return [DueItem(**item) for item in result.get("items", [])]

    def schedule(self, owner_id: str) -> StudySchedule:
        """Get the learner's schedule summary."""
        result = self._request("GET", f"{API_PREFIX}/schedule/{owner_id}")
        return StudySchedule(**result)

    def add_item(
        self,
        owner_id: str,
        prompt: str,
        answer: str,
        hint: Optional[str] = None,
        tags: Optional[List[str]] = None,
        item_id: Optional[str] = None,
    ) -> ReviewItem:
        """Assign one item to a learner."""
        body: Dict[str, Any] = {
            "owner_id": owner_id,
            "prompt": prompt,
            "answer": answer,
            "tags": tags or [],
        }
        if hint:
            body["hint"] = hint
        if item_id:
            body["item_id"] = item_id
        result = self._request("POST", f"{API_PREFIX}/items/add", json=body)
        return ReviewItem(**result)

    def import_items(
        self,
        owner_id: str,
        items: Optional[List[Dict[str, Any]]] = None,
        text: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> ImportSummary:
        """
        Bulk import items.

        Args:
            owner_id: The learner
            items: Dicts with prompt, answer and optional hint/tags
            text: Pasted cards in Q:/A: form
            tags: Tags applied to cards parsed from text
        """
        body: Dict[str, Any] = {"owner_id": owner_id, "items": items or [], "tags": tags or []}
        if text:
            body["text"] = text
        result = self._request("POST", f"{API_PREFIX}/items/import", json=body)
        return ImportSummary.from_dict(result)

    def retire_item(self, owner_id: str, item_id: str) -> None:
        """Remove an item whose content was retired."""
        self._request("DELETE", f"{API_PREFIX}/items/{owner_id}/{item_id}")

    def health(self) -> Dict[str, Any]:
        """Check API health status."""
        return self._request("GET", "/health")

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
