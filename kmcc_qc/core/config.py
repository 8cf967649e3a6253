"""
Settings and environment management module for the KMCC QC forecast backend.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development
- Singleton pattern via @lru_cache for efficient access
- Optional BigQuery service account credentials and Slack webhook
- Default monthly targets per center, used when the warehouse has no active
  target row

Environment Variables:
- BIGQUERY_PROJECT_ID: BigQuery project ID (default: splyquizkm)
- BIGQUERY_DATASET_ID: Dataset holding evaluations/targets (default: KMCC_QC)
- BIGQUERY_LOCATION: Query location (default: asia-northeast3)
- BIGQUERY_CREDENTIALS: Service account JSON as a string (optional)
- GOOGLE_APPLICATION_CREDENTIALS: Path to service account JSON (optional)
- SLACK_WEBHOOK_URL: Incoming webhook for the watch-list digest (optional)

Usage:
    from kmcc_qc.core.config import get_settings

    settings = get_settings()
    targets = settings.center_target_map()
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from kmcc_qc.models.enums import ProbabilityMethod
from kmcc_qc.models.schemas import CenterTargetMap, CenterTargets


# =============================================================================
# Default Targets
# Monthly error-rate targets (%) used when the targets table has no active
# row for a center. Values are the 2026 targets of the two sites.
# =============================================================================

DEFAULT_CENTER_TARGETS: Dict[str, Dict[str, float]] = {
    "용산": {"attitude": 3.3, "ops": 3.9},
    "광주": {"attitude": 2.7, "ops": 1.7},
}

# Target applied to any center without its own row or default
FALLBACK_TARGET: Dict[str, float] = {"attitude": 3.0, "ops": 3.0}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The class inherits from pydantic-settings BaseSettings which provides:
    - Automatic loading from environment variables (case-insensitive)
    - Support for .env file loading
    - Type validation and coercion
    - Default values for optional settings

    Attributes:
        bigquery_project_id: GCP project that owns the QC dataset.
        bigquery_dataset_id: Dataset with the evaluations and targets tables.
        bigquery_location: Location passed to every query job.
        bigquery_credentials: Inline service account JSON.
        google_application_credentials: Path to a service account JSON file.
        slack_webhook_url: Slack incoming webhook URL for the watch-list digest.
        default_center_targets: Per-center fallback targets.
        fallback_target: Target for centers with no row and no default.
        probability_method: Default achievement probability strategy.
        agent_attitude_watch_threshold: Attitude rate pre-filter for the
            agent watch-list query.
        agent_ops_watch_threshold: Ops rate pre-filter for the agent
            watch-list query.
        exclude_agent_prefix: Agent id prefix that marks test data.
        cors_origins: Origins allowed by the CORS middleware.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # BigQuery Warehouse
    # =========================================================================

    bigquery_project_id: str = 'splyquizkm'
    bigquery_dataset_id: str = 'KMCC_QC'
    bigquery_location: str = 'asia-northeast3'

    # Inline JSON takes precedence over the credentials file path
    bigquery_credentials: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # =========================================================================
    # Slack Integration (Optional - for the watch-list digest)
    # =========================================================================

    slack_webhook_url: Optional[str] = None

    # =========================================================================
    # Forecasting Defaults
    # =========================================================================

    default_center_targets: Dict[str, Dict[str, float]] = DEFAULT_CENTER_TARGETS
    fallback_target: Dict[str, float] = FALLBACK_TARGET

    probability_method: ProbabilityMethod = ProbabilityMethod.STATISTICAL

    # Warehouse pre-filter only; the rule engine applies its own thresholds
    agent_attitude_watch_threshold: float = 5.0
    agent_ops_watch_threshold: float = 6.0

    exclude_agent_prefix: str = 'AGT'

    # =========================================================================
    # HTTP
    # =========================================================================

    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    def center_target_map(self) -> CenterTargetMap:
        """
        Build the default CenterTargetMap from the configured targets.

        Returns:
            CenterTargetMap with one entry per configured center and the
            configured fallback target.
        """
        return CenterTargetMap(
            centers={
                center: CenterTargets(**values)
                for center, values in self.default_center_targets.items()
            },
            fallback=CenterTargets(**self.fallback_target),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The application settings instance with all configuration values.

    Note:
        To refresh settings in tests, you can clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
