"""
Pattern API Endpoints

Relationship matching over swing points, intraday blocks and
user-selected chart points.
"""

import logging

from fastapi import APIRouter, HTTPException

from chartlab.schemas.patterns import (
    BlockScanRequest,
    BlockScanResponse,
    PatternCaptureRequest,
    PatternCaptureResponse,
    PatternDefinitionOut,
    PatternDetectionRequest,
    PatternDetectionResponse,
    RelationshipEvaluationRequest,
    RelationshipEvaluationResponse,
)
from chartlab.services.base import ServiceError, ValidationError
from chartlab.services.patterns import get_pattern_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/definitions", response_model=list[PatternDefinitionOut])
async def get_definitions():
    """Classic patterns the detector recognises."""
    return get_pattern_service().definitions()


@router.post("/detect", response_model=PatternDetectionResponse)
async def detect_patterns(request: PatternDetectionRequest):
    """
    Detect patterns on ZigZag swing points.

    Send `relationships` (e.g. `["1>2", "2<3", "1=3"]`) to search for a
    custom shape, or leave it empty to search the classic patterns.
    """
    try:
        return await get_pattern_service().detect(request)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceError as e:
        logger.error(f"Pattern detection failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Pattern detection failed: {e.message}")


@router.post("/block-scan", response_model=BlockScanResponse)
async def block_scan(request: BlockScanRequest):
    """
    Scan 1m candles in fixed-size blocks (15 by default) for a relationship
    pattern, starting at the session open unless `start_index` is given.
    """
    try:
        return await get_pattern_service().block_scan(request)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceError as e:
        logger.error(f"Block scan failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Block scan failed: {e.message}")


@router.post("/evaluate", response_model=RelationshipEvaluationResponse)
async def evaluate_relationships(request: RelationshipEvaluationRequest):
    """Check selected point prices against relationship strings."""
    try:
        return await get_pattern_service().evaluate(request)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/capture", response_model=PatternCaptureResponse)
async def capture_pattern(request: PatternCaptureRequest):
    """Turn selected points into a named pattern with derived relationships."""
    try:
        return await get_pattern_service().capture(request)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
