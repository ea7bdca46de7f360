"""
Notation endpoints

POST /parse     parse workout notation into a structured workout
POST /validate  check exercise names against the exercise directory before parsing
GET  /health    liveness plus parser worker availability
"""

import asyncio
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from workout_notation.parsers.exercise_validator import validate
from workout_notation.parsers.models import DirectoryExercise, ParseResult, ValidationResult
from workout_notation.parsers.notation_parser import parse
from workout_notation.services.catalog_client import CatalogClient, CatalogError, get_catalog_client
from workout_notation.services.parser_host import (
    ParserHost,
    ParserHostError,
    ParserTimeoutError,
    ParserUnavailableError,
    get_parser_host,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ParseRequest(BaseModel):
    """Request model for POST /parse"""
    text: str = Field(..., max_length=50000, description="Workout notation, e.g. '4x8 Bench Press @ 185 lbs'")


class ValidateRequest(BaseModel):
    """Request model for POST /validate"""
    text: str = Field(..., max_length=50000)
    directory: Optional[List[DirectoryExercise]] = Field(
        default=None,
        description="Exercise directory to match against; fetched from the catalog when omitted",
    )
    always_confirm: bool = Field(default=True, description="Ask the user to confirm every match")


class ValidateResponse(ValidationResult):
    """ValidationResult plus summary counts"""
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------

@router.post("/parse", response_model=ParseResult)
async def parse_notation(
    request: ParseRequest,
    host: ParserHost = Depends(get_parser_host),
) -> ParseResult:
    """
    Parse workout notation.

    Parse problems are reported in the body (success=false plus errors), not
    as HTTP errors. 504 means the parser worker did not answer in time.
    """
    try:
        return await host.parse(request.text)
    except ParserTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except ParserUnavailableError as e:
        logger.warning(f"Parser worker unavailable, parsing in-process: {e}")
        return await asyncio.to_thread(parse, request.text)
    except ParserHostError as e:
        logger.error(f"Parser worker error: {e}")
        raise HTTPException(status_code=500, detail=f"Parser error: {e}")


@router.post("/validate", response_model=ValidateResponse)
async def validate_notation(
    request: ValidateRequest,
    catalog: Optional[CatalogClient] = Depends(get_catalog_client),
) -> ValidateResponse:
    """
    Match the exercise names in the text against the exercise directory.

    ## Request Body
    - **text**: Workout notation
    - **directory**: Optional exercise records; the configured catalog is used when omitted
    - **always_confirm**: Mark every match as needing confirmation (default true)
    """
    directory = request.directory
    if directory is None:
        if catalog is None:
            directory = []
        else:
            try:
                directory = await catalog.fetch_exercises()
            except CatalogError as e:
                raise HTTPException(status_code=502, detail=str(e))

    result = await asyncio.to_thread(validate, request.text, directory, request.always_confirm)
    summary = result.summary()
    logger.info(f"Validated notation: {summary}")
    return ValidateResponse(**result.model_dump(), metadata=summary)


@router.get("/health")
async def health(host: ParserHost = Depends(get_parser_host)) -> dict:
    return {"status": "ok", "parser_worker_available": host.available}
