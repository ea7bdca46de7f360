"""
Exercise Catalog Client

Fetches the exercise directory from the external catalog service. The
directory feeds the pre-parse validator with real exercise records.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from workout_notation.config import settings
from workout_notation.parsers.models import DirectoryExercise
from workout_notation.services.retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_WAIT_SECONDS,
    DEFAULT_MIN_WAIT_SECONDS,
    create_retry_decorator,
)

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class CatalogError(RuntimeError):
    """The exercise catalog could not be fetched or understood"""


def _snake_case_keys(record: Dict[str, Any]) -> Dict[str, Any]:
    """The catalog serves camelCase keys (muscleGroup, videoLinks)."""
    return {_CAMEL_BOUNDARY.sub("_", key).lower(): value for key, value in record.items()}


class CatalogClient:
    """Async client for GET {base_url}/exercises"""

    def __init__(
        self,
        base_url: str,
        timeout: float = settings.EXERCISE_CATALOG_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_wait_seconds: float = DEFAULT_MIN_WAIT_SECONDS,
        max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._retry = create_retry_decorator(
            max_attempts=max_attempts,
            min_wait_seconds=min_wait_seconds,
            max_wait_seconds=max_wait_seconds,
        )

    async def fetch_exercises(self) -> List[DirectoryExercise]:
        """
        Fetch every exercise in the catalog.

        Accepts either a bare JSON list or {"exercises": [...]}.

        Raises:
            CatalogError: On HTTP failure after retries or an unexpected payload
        """
        try:
            payload = await self._retry(self._get_exercises)()
        except httpx.HTTPError as e:
            logger.error(f"Exercise catalog request failed: {e}")
            raise CatalogError(f"Exercise catalog request failed: {e}") from e
        except ValueError as e:
            raise CatalogError(f"Exercise catalog returned invalid JSON: {e}") from e

        items = payload.get("exercises") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise CatalogError("Exercise catalog returned an unexpected payload")

        try:
            exercises = [DirectoryExercise.model_validate(_snake_case_keys(item)) for item in items]
        except (ValidationError, AttributeError) as e:
            raise CatalogError(f"Exercise catalog returned an invalid record: {e}") from e

        logger.info(f"Loaded {len(exercises)} exercises from catalog")
        return exercises

    async def _get_exercises(self) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.get("/exercises")
            response.raise_for_status()
            return response.json()


def get_catalog_client() -> Optional[CatalogClient]:
    """Client for the configured catalog, or None when no URL is set."""
    if not settings.EXERCISE_CATALOG_URL:
        return None
    return CatalogClient(settings.EXERCISE_CATALOG_URL)
