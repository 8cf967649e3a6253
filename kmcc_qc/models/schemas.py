"""
Pydantic request/response models for the KMCC QC forecast backend.

This module provides type-safe data validation and serialization for:
- Forecasting engine records (WeeklyRate, PredictionResult)
- Dimension records (GroupPrediction, AgentPrediction)
- Target configuration (CenterTargets, CenterTargetMap)
- Warehouse ingestion rows (TargetRow, GroupRateRow, AgentRateRow)
- HTTP response envelopes for the dashboard

Field names are camelCase because the Next.js dashboard consumes these
records as-is. All models use Pydantic v2 syntax.
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kmcc_qc.models.enums import RiskLevel, Trend, Week


def _coerce_rate(value: Any) -> float:
    """Warehouse SAFE_DIVIDE yields NULL for empty groups; treat NULL/NaN as 0."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


# =============================================================================
# Forecasting Engine Models
# =============================================================================


class WeeklyRate(BaseModel):
    """
    Error rate of one dimension for one week bucket.

    Produced per request from warehouse rows; never persisted.
    """
    week: Week = Field(..., description="Week bucket (W1..W4)")
    rate: float = Field(..., ge=0.0, description="Error rate in percent")
    sampleCount: int = Field(default=0, ge=0, description="Evaluations in the week")

    @field_validator('rate', mode='before')
    @classmethod
    def _rate_not_null(cls, value: Any) -> float:
        return _coerce_rate(value)


class PredictionResult(BaseModel):
    """
    Month-end prediction of one metric (attitude or ops) for one dimension.

    `riskLevel` is always derived by the risk classifier from the other
    fields; it is never set independently.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "currentRate": 3.0,
                "predictedRate": 3.15,
                "targetRate": 3.3,
                "achievementProbability": 62,
                "trend": "stable",
                "riskLevel": "medium",
                "weeklyRates": [2.8, 3.0, 3.2],
                "w4Predicted": 3.4,
            }
        }
    )

    currentRate: float = Field(..., description="Month-to-date error rate (%)")
    predictedRate: float = Field(..., description="Projected month-end error rate (%)")
    targetRate: float = Field(..., description="Monthly target error rate (%)")
    achievementProbability: int = Field(
        ...,
        ge=0,
        le=100,
        description="Probability (%) of finishing at or below target",
    )
    trend: Trend
    riskLevel: RiskLevel
    weeklyRates: List[float] = Field(default_factory=list, description="Chronological weekly rates")
    w4Predicted: float = Field(..., description="Extrapolated final-week rate (%)")


class WeeklyMetric(BaseModel):
    """Per-week attitude and ops rates of a group, for the trend chart."""
    week: Week
    checks: int = Field(default=0, ge=0)
    attitudeRate: float = 0.0
    opsRate: float = 0.0


class GroupPrediction(BaseModel):
    """
    Forecast for one center x service x channel group.

    The total prediction blends attitude and ops with equal weight. An empty
    `watchListReason` means the group is not enrolled on the watch list.
    """
    center: str
    service: str
    channel: str
    serviceChannel: str = Field(..., description="'{service}_{channel}' key")
    currentChecks: int = Field(default=0, ge=0)
    attitudePrediction: PredictionResult
    processPrediction: PredictionResult
    totalPrediction: PredictionResult
    overallRiskLevel: RiskLevel = Field(
        ...,
        description="Worse of the attitude and ops risk levels",
    )
    alertFlag: bool = Field(
        ...,
        description="attitude/ops probability below 30% or overall risk critical",
    )
    watchListReason: List[str] = Field(default_factory=list)
    attitudeWatchReasons: List[str] = Field(
        default_factory=list,
        description="Unlabelled attitude reasons, as produced by the watch-list rules",
    )
    opsWatchReasons: List[str] = Field(
        default_factory=list,
        description="Unlabelled ops reasons, as produced by the watch-list rules",
    )
    weeklyMetrics: List[WeeklyMetric] = Field(default_factory=list)


class AgentErrorInfo(BaseModel):
    """One of an agent's top error items."""
    name: str
    count: int = Field(..., ge=0)
    rate: float = Field(..., ge=0.0, description="count / evaluations x 100")


class AgentPrediction(BaseModel):
    """
    Watch-list view of an individual agent.

    Agents are judged on absolute thresholds; the trend is borrowed from
    the agent's service/channel group.
    """
    agentId: str
    agentName: str
    center: str
    group: str = Field(..., description="'{service}/{channel}'")
    service: str
    channel: str
    evaluationCount: int = Field(default=0, ge=0)
    attitudeRate: float
    processRate: float
    totalRate: float
    trend: Trend
    riskLevel: RiskLevel
    watchListReason: List[str] = Field(default_factory=list)
    mainErrors: List[AgentErrorInfo] = Field(default_factory=list)


# =============================================================================
# Target Configuration
# =============================================================================


class CenterTargets(BaseModel):
    """Monthly target error rates (%) of one center."""
    attitude: float = Field(..., ge=0.0)
    ops: float = Field(..., ge=0.0)


class CenterTargetMap(BaseModel):
    """
    Explicit target configuration handed to the engine.

    Centers without an entry use the fallback target.
    """
    centers: Dict[str, CenterTargets] = Field(default_factory=dict)
    fallback: CenterTargets = Field(
        default_factory=lambda: CenterTargets(attitude=3.0, ops=3.0)
    )

    def for_center(self, center: Optional[str]) -> CenterTargets:
        """Return the targets of a center, or the fallback."""
        if center and center in self.centers:
            return self.centers[center]
        return self.fallback


# =============================================================================
# Warehouse Ingestion Rows
# =============================================================================


class TargetRow(BaseModel):
    """Active monthly target row from the targets table."""
    center: Optional[str] = None
    targetType: str
    targetRate: float = Field(..., ge=0.0)

    @field_validator('targetRate', mode='before')
    @classmethod
    def _target_not_null(cls, value: Any) -> float:
        return _coerce_rate(value)


class GroupRateRow(BaseModel):
    """
    Aggregated rates of one group for the requested month.

    Weekly lists are kept in chronological (W1..W4) order.
    """
    center: str
    service: str
    channel: str
    totalChecks: int = Field(default=0, ge=0)
    currentAttitudeRate: float = 0.0
    currentOpsRate: float = 0.0
    weeklyAttitude: List[WeeklyRate] = Field(default_factory=list)
    weeklyOps: List[WeeklyRate] = Field(default_factory=list)

    @field_validator('currentAttitudeRate', 'currentOpsRate', mode='before')
    @classmethod
    def _current_not_null(cls, value: Any) -> float:
        return _coerce_rate(value)

    @property
    def service_channel(self) -> str:
        return f"{self.service}_{self.channel}"

    @property
    def attitude_rates(self) -> List[float]:
        return [w.rate for w in self.weeklyAttitude]

    @property
    def ops_rates(self) -> List[float]:
        return [w.rate for w in self.weeklyOps]


class AgentRateRow(BaseModel):
    """Aggregated rates and top error items of one agent for the month."""
    agentId: str
    agentName: str = ''
    center: str
    service: str = ''
    channel: str = ''
    evaluationCount: int = Field(default=0, ge=0)
    attitudeRate: float = 0.0
    opsRate: float = 0.0
    topErrors: List[AgentErrorInfo] = Field(default_factory=list)

    @field_validator('attitudeRate', 'opsRate', mode='before')
    @classmethod
    def _rates_not_null(cls, value: Any) -> float:
        return _coerce_rate(value)


# =============================================================================
# Response Envelopes
# =============================================================================


class PredictionSummary(BaseModel):
    """Headline counts for the predictions page."""
    totalGroups: int = Field(..., ge=0)
    atRiskGroups: int = Field(..., ge=0, description="Groups with alertFlag set")
    riskCounts: Dict[str, int] = Field(
        default_factory=dict,
        description="Group count per totalPrediction.riskLevel",
    )


class PredictionsData(BaseModel):
    month: str
    predictions: List[GroupPrediction]
    summary: PredictionSummary


class PredictionsResponse(BaseModel):
    success: bool = True
    data: PredictionsData


class AgentPredictionsData(BaseModel):
    month: str
    agents: List[AgentPrediction]


class AgentPredictionsResponse(BaseModel):
    success: bool = True
    data: AgentPredictionsData


class WatchListData(BaseModel):
    """Dimensions with at least one watch-list reason."""
    month: str
    groups: List[GroupPrediction]
    agents: List[AgentPrediction]
    summary: Dict[str, int] = Field(default_factory=dict)


class WatchListResponse(BaseModel):
    success: bool = True
    data: WatchListData


class CategorySummary(BaseModel):
    """Mean rates of one category across a center's groups."""
    current: float = 0.0
    predicted: float = 0.0
    target: float = 0.0
    probability: int = Field(default=0, ge=0, le=100)


class CenterSummary(BaseModel):
    """Center-level roll-up of the group predictions."""
    center: str
    groupCount: int = Field(..., ge=0)
    attitude: CategorySummary
    ops: CategorySummary
    overallRiskLevel: RiskLevel


class CenterSummaryData(BaseModel):
    month: str
    centers: List[CenterSummary]


class CenterSummaryResponse(BaseModel):
    success: bool = True
    data: CenterSummaryData


class ErrorResponse(BaseModel):
    """Body of every 500 response."""
    success: bool = False
    error: str
