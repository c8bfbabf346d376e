"""JSON API endpoints for ranked funding spread opportunities."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from fundingarb.exceptions import AggregationError

log = structlog.get_logger(__name__)

router = APIRouter()

AGGREGATION_FAILED_MESSAGE = "Failed to fetch and aggregate data"


@router.get("/arbitrage")
async def get_arbitrage(
    request: Request,
    cached: bool = Query(False, description="Serve the last cycle instead of polling now"),
    limit: int | None = Query(None, ge=1),
) -> JSONResponse:
    """Ranked opportunities, widest 8h spread first.

    Runs a fresh poll cycle unless ``cached`` is set. An aggregation failure
    returns HTTP 500 with a generic error and no partial list.
    """
    scanner = request.app.state.scanner

    if cached:
        opportunities = scanner.get_opportunities()
    else:
        try:
            opportunities = await scanner.run_cycle()
        except AggregationError as e:
            log.error("arbitrage_request_failed", error=str(e))
            return JSONResponse(
                status_code=500,
                content={"error": AGGREGATION_FAILED_MESSAGE},
            )

    if limit is not None:
        opportunities = opportunities[:limit]

    return JSONResponse(content=[opp.to_dict() for opp in opportunities])


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Scanner status (cycle count, last error, alert counters)."""
    scanner = request.app.state.scanner
    return JSONResponse(content=scanner.get_status())
