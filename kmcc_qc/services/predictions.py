"""
Prediction Pipeline Service

Connects the warehouse to the forecasting core. Each request:
1. resolves the month and the month progress from an injected "today"
2. fetches targets, group rates and (when needed) agent rates concurrently
3. validates the rows into pydantic models
4. runs the forecasting core and filters the result by center

Target lookup never fails the request: it tries the simple targets query,
then the date-ranged one, and finally falls back to the configured defaults
with a warning. Failures of the rate queries propagate to the HTTP handler.
"""

import asyncio
import logging
import re
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from kmcc_qc.core.config import Settings
from kmcc_qc.core.warehouse import WarehouseClient
from kmcc_qc.models.enums import ProbabilityMethod, RiskLevel, Week
from kmcc_qc.models.schemas import (
    AgentErrorInfo,
    AgentPrediction,
    AgentRateRow,
    CenterSummary,
    CenterTargetMap,
    CenterTargets,
    GroupPrediction,
    GroupRateRow,
    TargetRow,
    WatchListData,
    WeeklyRate,
)
from kmcc_qc.services.aggregation import (
    build_agent_prediction,
    build_group_prediction,
    group_trend_map,
    summarize_centers,
)
from kmcc_qc.services.forecasting import month_progress, round_half_up
from kmcc_qc.sql.prediction_queries import (
    ERROR_ITEM_COLUMNS,
    get_agent_rates_query,
    get_group_weekly_rates_query,
    get_targets_query,
)


logger = logging.getLogger(__name__)


MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Number of item errors listed per agent
TOP_ERROR_LIMIT = 3

# Center value that means "no filter" in dashboard requests
ALL_CENTERS = "all"


def parse_month(value: Optional[str], today: date) -> str:
    """
    Normalize the month query parameter.

    Args:
        value: Requested month, expected as YYYY-MM.
        today: Reference date.

    Returns:
        The requested month when well-formed, otherwise the month of today.
    """
    if value and MONTH_PATTERN.match(value):
        return value
    return today.strftime("%Y-%m")


def _matches_center(record_center: str, center: Optional[str]) -> bool:
    return not center or center == ALL_CENTERS or record_center == center


# =============================================================================
# Targets
# =============================================================================

def fold_target_rows(rows: List[TargetRow], settings: Settings) -> CenterTargetMap:
    """
    Merge active target rows with the configured default targets.

    A center that has rows starts from the fallback target and takes the
    attitude/ops values of its rows; a row without a center replaces the
    fallback. Centers without rows keep their configured defaults.
    """
    defaults = settings.center_target_map()
    fallback = defaults.fallback.model_dump()
    overrides: Dict[Optional[str], Dict[str, float]] = {}

    for row in rows:
        values = overrides.setdefault(row.center or None, dict(fallback))
        if row.targetType in ("attitude", "ops"):
            values[row.targetType] = row.targetRate

    centers = dict(defaults.centers)
    for center, values in overrides.items():
        if center is not None:
            centers[center] = CenterTargets(**values)

    return CenterTargetMap(
        centers=centers,
        fallback=CenterTargets(**overrides[None]) if None in overrides else defaults.fallback,
    )


async def fetch_center_targets(warehouse: WarehouseClient, settings: Settings) -> CenterTargetMap:
    """
    Load the active monthly targets.

    Older targets tables lack the period columns, so the simple query is
    tried first and the date-ranged query second. If both fail the
    configured defaults are used.

    Args:
        warehouse: Warehouse client.
        settings: Settings holding the default targets.

    Returns:
        CenterTargetMap for the forecasting core.
    """
    raw_rows: List[Dict[str, Any]] = []

    try:
        raw_rows = await warehouse.fetch(get_targets_query(warehouse.dataset, with_period=False))
    except Exception as e:
        logger.warning(f"Simple targets query failed, retrying with period columns: {e}")
        try:
            raw_rows = await warehouse.fetch(get_targets_query(warehouse.dataset, with_period=True))
        except Exception as full_error:
            logger.warning(f"Could not fetch targets, using defaults: {full_error}")
            raw_rows = []

    return fold_target_rows(parse_target_rows(raw_rows), settings)


def parse_target_rows(raw_rows: List[Dict[str, Any]]) -> List[TargetRow]:
    """
    Validate raw target rows, skipping the ones that fail validation.

    A skipped row leaves its center on the fallback or configured default.
    """
    rows: List[TargetRow] = []
    for raw in raw_rows:
        try:
            rows.append(TargetRow(
                center=raw.get("center"),
                targetType=str(raw.get("target_type") or ""),
                targetRate=raw.get("target_rate"),
            ))
        except ValidationError as e:
            logger.warning(f"Skipping invalid target row {raw}: {e}")
    return rows


# =============================================================================
# Rate Rows
# =============================================================================

async def fetch_group_rates(
    warehouse: WarehouseClient,
    dataset: str,
    month: str,
) -> List[GroupRateRow]:
    """
    Fetch month-to-date and weekly rates per center x service x channel.

    The query yields one row per group and week; rows are folded into one
    GroupRateRow per group with chronological weekly lists.
    """
    raw_rows = await warehouse.fetch(get_group_weekly_rates_query(dataset), {"month": month})

    groups: "OrderedDict[Tuple[str, str, str], GroupRateRow]" = OrderedDict()
    for row in raw_rows:
        key = (
            str(row.get("center") or ""),
            str(row.get("service") or ""),
            str(row.get("channel") or ""),
        )
        group = groups.get(key)
        if group is None:
            group = GroupRateRow(
                center=key[0],
                service=key[1],
                channel=key[2],
                totalChecks=int(row.get("total_checks") or 0),
                currentAttitudeRate=row.get("current_attitude_rate"),
                currentOpsRate=row.get("current_ops_rate"),
            )
            groups[key] = group

        week = row.get("week")
        if week is None:
            continue
        checks = int(row.get("checks") or 0)
        group.weeklyAttitude.append(
            WeeklyRate(week=Week(week), rate=row.get("attitude_rate"), sampleCount=checks)
        )
        group.weeklyOps.append(
            WeeklyRate(week=Week(week), rate=row.get("ops_rate"), sampleCount=checks)
        )

    for group in groups.values():
        group.weeklyAttitude.sort(key=lambda w: w.week.value)
        group.weeklyOps.sort(key=lambda w: w.week.value)

    logger.info(f"Fetched rates for {len(groups)} groups in {month}")
    return list(groups.values())


def top_errors(row: Dict[str, Any], evaluation_count: int) -> List[AgentErrorInfo]:
    """
    Pick the most frequent item errors of an agent.

    Args:
        row: Raw agent row with one <item>_errors column per item.
        evaluation_count: Evaluations of the agent in the month.

    Returns:
        Up to TOP_ERROR_LIMIT items with a non-zero count, most frequent
        first. rate = count / evaluations x 100.
    """
    counts = [
        (name, int(row.get(f"{column}s") or 0))
        for column, name in ERROR_ITEM_COLUMNS.items()
    ]
    counts = [(name, count) for name, count in counts if count > 0]
    counts.sort(key=lambda item: item[1], reverse=True)

    return [
        AgentErrorInfo(
            name=name,
            count=count,
            rate=round_half_up(count / evaluation_count * 100) if evaluation_count else 0.0,
        )
        for name, count in counts[:TOP_ERROR_LIMIT]
    ]


async def fetch_agent_rates(
    warehouse: WarehouseClient,
    dataset: str,
    month: str,
    settings: Settings,
    center: Optional[str] = None,
    watch_only: bool = False,
) -> List[AgentRateRow]:
    """
    Fetch month-to-date rates and top item errors per agent.

    Args:
        warehouse: Warehouse client.
        dataset: Dataset id.
        month: Month in YYYY-MM format.
        settings: Settings with the test-agent prefix and watch thresholds.
        center: Optional center filter ('all' means no filter).
        watch_only: Pre-filter on the configured watch thresholds.

    Returns:
        Validated agent rows, highest combined rate first.
    """
    center_filter = center if center and center != ALL_CENTERS else None

    params: Dict[str, Any] = {
        "month": month,
        "exclude_prefix": settings.exclude_agent_prefix,
    }
    if center_filter:
        params["center"] = center_filter
    if watch_only:
        params["attitude_threshold"] = settings.agent_attitude_watch_threshold
        params["ops_threshold"] = settings.agent_ops_watch_threshold

    raw_rows = await warehouse.fetch(
        get_agent_rates_query(dataset, center=center_filter, watch_only=watch_only),
        params,
    )

    agents = []
    for row in raw_rows:
        evaluation_count = int(row.get("evaluation_count") or 0)
        agents.append(AgentRateRow(
            agentId=str(row.get("agent_id") or ""),
            agentName=str(row.get("agent_name") or ""),
            center=str(row.get("center") or ""),
            service=str(row.get("service") or ""),
            channel=str(row.get("channel") or ""),
            evaluationCount=evaluation_count,
            attitudeRate=row.get("attitude_rate"),
            opsRate=row.get("ops_rate"),
            topErrors=top_errors(row, evaluation_count),
        ))

    logger.info(f"Fetched rates for {len(agents)} agents in {month}")
    return agents


# =============================================================================
# Pipeline
# =============================================================================

def _predict_groups(
    rows: List[GroupRateRow],
    targets: CenterTargetMap,
    month: str,
    today: date,
    method: ProbabilityMethod,
) -> List[GroupPrediction]:
    days_passed, days_remaining = month_progress(month, today)
    return [
        build_group_prediction(
            row, targets.for_center(row.center), days_passed, days_remaining, method
        )
        for row in rows
    ]


async def build_group_predictions(
    warehouse: WarehouseClient,
    settings: Settings,
    month: str,
    today: date,
    center: Optional[str] = None,
    method: Optional[ProbabilityMethod] = None,
) -> Tuple[List[GroupPrediction], CenterTargetMap]:
    """
    Forecast every group of a month.

    Args:
        warehouse: Warehouse client.
        settings: Application settings.
        month: Month in YYYY-MM format.
        today: Reference date for the month progress.
        center: Optional center filter ('all' means no filter).
        method: Probability strategy; defaults to settings.probability_method.

    Returns:
        (group predictions, targets used)
    """
    targets, rows = await asyncio.gather(
        fetch_center_targets(warehouse, settings),
        fetch_group_rates(warehouse, warehouse.dataset, month),
    )

    predictions = _predict_groups(
        rows, targets, month, today, method or settings.probability_method
    )
    predictions = [p for p in predictions if _matches_center(p.center, center)]

    return predictions, targets


async def build_agent_predictions(
    warehouse: WarehouseClient,
    settings: Settings,
    month: str,
    today: date,
    center: Optional[str] = None,
    watch_only: bool = False,
) -> List[AgentPrediction]:
    """
    Build agent records with trends borrowed from their groups.

    Returns:
        Agent predictions, highest combined rate first.
    """
    (groups, _), agent_rows = await asyncio.gather(
        build_group_predictions(warehouse, settings, month, today),
        fetch_agent_rates(
            warehouse, warehouse.dataset, month, settings,
            center=center, watch_only=watch_only,
        ),
    )

    trends = group_trend_map(groups)
    return [
        build_agent_prediction(row, trends)
        for row in agent_rows
        if _matches_center(row.center, center)
    ]


async def build_watch_list(
    warehouse: WarehouseClient,
    settings: Settings,
    month: str,
    today: date,
    center: Optional[str] = None,
) -> WatchListData:
    """
    Collect the groups and agents enrolled on the watch list.

    A dimension is enrolled when the rule engine returned at least one reason.
    """
    (groups, _), agent_rows = await asyncio.gather(
        build_group_predictions(warehouse, settings, month, today),
        fetch_agent_rates(
            warehouse, warehouse.dataset, month, settings,
            center=center, watch_only=True,
        ),
    )

    trends = group_trend_map(groups)
    watched_groups = [
        g for g in groups
        if g.watchListReason and _matches_center(g.center, center)
    ]
    watched_agents = [
        a for a in (build_agent_prediction(row, trends) for row in agent_rows)
        if a.watchListReason and _matches_center(a.center, center)
    ]

    summary = {
        "groups": len(watched_groups),
        "agents": len(watched_agents),
        "criticalGroups": sum(1 for g in watched_groups if g.overallRiskLevel == RiskLevel.CRITICAL),
        "criticalAgents": sum(1 for a in watched_agents if a.riskLevel == RiskLevel.CRITICAL),
    }

    return WatchListData(
        month=month,
        groups=watched_groups,
        agents=watched_agents,
        summary=summary,
    )


async def build_center_summaries(
    warehouse: WarehouseClient,
    settings: Settings,
    month: str,
    today: date,
    method: Optional[ProbabilityMethod] = None,
) -> List[CenterSummary]:
    """Roll the group predictions of a month up to one record per center."""
    groups, targets = await build_group_predictions(
        warehouse, settings, month, today, method=method
    )
    return summarize_centers(groups, targets)
