"""
FastAPI router module for the month-end prediction endpoints.

This module implements endpoints for:
- Group predictions per center x service x channel with summary counts
- Agent predictions with trends borrowed from their groups
- The watch list (groups and agents with at least one reason)
- Per-center roll-ups

Every endpoint accepts `month` as YYYY-MM and falls back to the current
month for a missing or malformed value. Failures are returned as
500 {"success": false, "error": "<message>"} so the dashboard can show the
message without parsing FastAPI's error shape.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from kmcc_qc.core.dependencies import SettingsDep, TodayDep, WarehouseDep
from kmcc_qc.models import (
    AgentPredictionsData,
    AgentPredictionsResponse,
    CenterSummaryData,
    CenterSummaryResponse,
    ErrorResponse,
    PredictionsData,
    PredictionsResponse,
    ProbabilityMethod,
    WatchListResponse,
)
from kmcc_qc.services.aggregation import summarize_predictions
from kmcc_qc.services.predictions import (
    build_agent_predictions,
    build_center_summaries,
    build_group_predictions,
    build_watch_list,
    parse_month,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/predictions", tags=["predictions"])


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=message).model_dump(),
    )


# =============================================================================
# Group Predictions
# =============================================================================

@router.get("", response_model=PredictionsResponse)
async def get_predictions(
    warehouse: WarehouseDep,
    settings: SettingsDep,
    today: TodayDep,
    month: Optional[str] = Query(None, description="Month in YYYY-MM format"),
    center: Optional[str] = Query(None, description="Center filter ('all' for every center)"),
    method: Optional[ProbabilityMethod] = Query(
        None,
        description="Achievement probability strategy (defaults to the configured one)",
    ),
):
    """
    Forecast month-end attitude/ops error rates of every group.

    Returns:
        PredictionsResponse with the group predictions and summary counts
        (totalGroups, atRiskGroups, riskCounts).
    """
    resolved_month = parse_month(month, today)
    logger.info(f"Predictions request: month={resolved_month} center={center} method={method}")

    try:
        predictions, _ = await build_group_predictions(
            warehouse, settings, resolved_month, today, center=center, method=method
        )

        return PredictionsResponse(
            data=PredictionsData(
                month=resolved_month,
                predictions=predictions,
                summary=summarize_predictions(predictions),
            )
        )

    except Exception as e:
        logger.error(f"Error building predictions for {resolved_month}: {e}", exc_info=True)
        return _error_response(str(e))


# =============================================================================
# Agent Predictions
# =============================================================================

@router.get("/agents", response_model=AgentPredictionsResponse)
async def get_agent_predictions(
    warehouse: WarehouseDep,
    settings: SettingsDep,
    today: TodayDep,
    month: Optional[str] = Query(None, description="Month in YYYY-MM format"),
    center: Optional[str] = Query(None, description="Center filter ('all' for every center)"),
):
    """Agent records of a month, highest combined error rate first."""
    resolved_month = parse_month(month, today)
    logger.info(f"Agent predictions request: month={resolved_month} center={center}")

    try:
        agents = await build_agent_predictions(
            warehouse, settings, resolved_month, today, center=center
        )
        return AgentPredictionsResponse(
            data=AgentPredictionsData(month=resolved_month, agents=agents)
        )

    except Exception as e:
        logger.error(f"Error building agent predictions for {resolved_month}: {e}", exc_info=True)
        return _error_response(str(e))


# =============================================================================
# Watch List
# =============================================================================

@router.get("/watch-list", response_model=WatchListResponse)
async def get_watch_list(
    warehouse: WarehouseDep,
    settings: SettingsDep,
    today: TodayDep,
    month: Optional[str] = Query(None, description="Month in YYYY-MM format"),
    center: Optional[str] = Query(None, description="Center filter ('all' for every center)"),
):
    """
    Groups and agents enrolled on the watch list.

    A dimension is enrolled when the rule engine returns at least one reason.
    """
    resolved_month = parse_month(month, today)
    logger.info(f"Watch list request: month={resolved_month} center={center}")

    try:
        data = await build_watch_list(warehouse, settings, resolved_month, today, center=center)
        return WatchListResponse(data=data)

    except Exception as e:
        logger.error(f"Error building watch list for {resolved_month}: {e}", exc_info=True)
        return _error_response(str(e))


# =============================================================================
# Center Summary
# =============================================================================

@router.get("/centers", response_model=CenterSummaryResponse)
async def get_center_summaries(
    warehouse: WarehouseDep,
    settings: SettingsDep,
    today: TodayDep,
    month: Optional[str] = Query(None, description="Month in YYYY-MM format"),
):
    """Per-center means of the group predictions with the worst overall risk."""
    resolved_month = parse_month(month, today)
    logger.info(f"Center summary request: month={resolved_month}")

    try:
        centers = await build_center_summaries(warehouse, settings, resolved_month, today)
        return CenterSummaryResponse(
            data=CenterSummaryData(month=resolved_month, centers=centers)
        )

    except Exception as e:
        logger.error(f"Error building center summary for {resolved_month}: {e}", exc_info=True)
        return _error_response(str(e))
