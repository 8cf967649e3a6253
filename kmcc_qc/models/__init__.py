"""
Package initialization file for the KMCC QC models.

Re-exports all Pydantic schemas and enumerations so other modules can
import them from kmcc_qc.models directly.

Usage:
    from kmcc_qc.models import (
        PredictionResult,
        GroupPrediction,
        RiskLevel,
        Trend,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from kmcc_qc.models.enums import (
    Week,
    Trend,
    RiskLevel,
    Category,
    ProbabilityMethod,
)

# =============================================================================
# Schemas
# =============================================================================

from kmcc_qc.models.schemas import (
    # Forecasting engine
    WeeklyRate,
    PredictionResult,
    WeeklyMetric,
    GroupPrediction,
    AgentErrorInfo,
    AgentPrediction,
    # Target configuration
    CenterTargets,
    CenterTargetMap,
    # Warehouse ingestion rows
    TargetRow,
    GroupRateRow,
    AgentRateRow,
    # Response envelopes
    PredictionSummary,
    PredictionsData,
    PredictionsResponse,
    AgentPredictionsData,
    AgentPredictionsResponse,
    WatchListData,
    WatchListResponse,
    CategorySummary,
    CenterSummary,
    CenterSummaryData,
    CenterSummaryResponse,
    ErrorResponse,
)


__all__ = [
    # Enums
    'Week',
    'Trend',
    'RiskLevel',
    'Category',
    'ProbabilityMethod',
    # Forecasting engine
    'WeeklyRate',
    'PredictionResult',
    'WeeklyMetric',
    'GroupPrediction',
    'AgentErrorInfo',
    'AgentPrediction',
    # Target configuration
    'CenterTargets',
    'CenterTargetMap',
    # Warehouse ingestion rows
    'TargetRow',
    'GroupRateRow',
    'AgentRateRow',
    # Response envelopes
    'PredictionSummary',
    'PredictionsData',
    'PredictionsResponse',
    'AgentPredictionsData',
    'AgentPredictionsResponse',
    'WatchListData',
    'WatchListResponse',
    'CategorySummary',
    'CenterSummary',
    'CenterSummaryData',
    'CenterSummaryResponse',
    'ErrorResponse',
]
