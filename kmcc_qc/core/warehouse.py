"""
BigQuery warehouse client module for the KMCC QC forecast backend.

This module wraps google-cloud-bigquery in a small async-friendly client and
manages it as a process-wide singleton, following the same lifecycle as a
connection pool: created at application startup, shared by all requests,
released at shutdown.

Key Components:
- WarehouseClient: runs parameterized queries and returns plain dict rows
- init_warehouse(): create the singleton at application startup
- get_warehouse(): get the singleton (initializes if needed)
- close_warehouse(): release the singleton at application shutdown

The BigQuery client is synchronous, so each query job runs in a worker
thread via asyncio.to_thread. This lets request handlers issue independent
queries concurrently with asyncio.gather.

Authentication order:
1. BIGQUERY_CREDENTIALS environment variable (service account JSON string)
2. GOOGLE_APPLICATION_CREDENTIALS / application default credentials

Usage:
    warehouse = await get_warehouse()
    rows = await warehouse.fetch(
        "SELECT center FROM `KMCC_QC.targets` WHERE period_type = @period",
        {"period": "monthly"},
    )
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from google.cloud import bigquery
from google.oauth2 import service_account

from kmcc_qc.core.config import Settings, get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Query Parameter Helpers
# =============================================================================

def _to_query_parameters(params: Dict[str, Any]) -> List[bigquery.ScalarQueryParameter]:
    """
    Convert a plain dict into BigQuery named scalar parameters.

    Args:
        params: Mapping of parameter name (without '@') to value.

    Returns:
        List of ScalarQueryParameter objects typed from the Python values.
    """
    parameters = []
    for name, value in params.items():
        if isinstance(value, bool):
            type_ = 'BOOL'
        elif isinstance(value, int):
            type_ = 'INT64'
        elif isinstance(value, float):
            type_ = 'FLOAT64'
        else:
            type_ = 'STRING'
            value = None if value is None else str(value)
        parameters.append(bigquery.ScalarQueryParameter(name, type_, value))
    return parameters


def build_bigquery_client(settings: Settings) -> bigquery.Client:
    """
    Create a BigQuery client from settings.

    Args:
        settings: Application settings.

    Returns:
        bigquery.Client bound to the configured project.

    Raises:
        ValueError: If BIGQUERY_CREDENTIALS is set but is not valid JSON.
    """
    if settings.bigquery_credentials:
        try:
            info = json.loads(settings.bigquery_credentials)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse BIGQUERY_CREDENTIALS")
            raise ValueError("Invalid BIGQUERY_CREDENTIALS format") from e
        credentials = service_account.Credentials.from_service_account_info(info)
        return bigquery.Client(
            project=settings.bigquery_project_id,
            credentials=credentials,
        )

    return bigquery.Client(project=settings.bigquery_project_id)


# =============================================================================
# Warehouse Client
# =============================================================================

class WarehouseClient:
    """
    Thin async facade over a BigQuery client.

    Attributes:
        dataset: Dataset id that query builders qualify table names with.
        location: Location passed to each query job.
    """

    def __init__(self, client: bigquery.Client, dataset: str, location: str) -> None:
        self._client = client
        self.dataset = dataset
        self.location = location

    def _run(self, query: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        job_config = bigquery.QueryJobConfig(
            query_parameters=_to_query_parameters(params)
        )
        job = self._client.query(query, job_config=job_config, location=self.location)
        return [dict(row.items()) for row in job.result()]

    async def fetch(
        self,
        query: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run a query and return all rows as dicts.

        Args:
            query: BigQuery Standard SQL with @name parameter placeholders.
            params: Values for the named parameters.

        Returns:
            List of row dicts keyed by column name.

        Raises:
            google.api_core.exceptions.GoogleAPIError: If the job fails
                (bad column, missing table, permission denied).
        """
        return await asyncio.to_thread(self._run, query, params or {})

    def close(self) -> None:
        self._client.close()


# =============================================================================
# Singleton Lifecycle
# =============================================================================

_warehouse: Optional[WarehouseClient] = None


async def init_warehouse() -> WarehouseClient:
    """
    Initialize the warehouse client singleton.

    Idempotent: returns the existing client if already initialized.
    """
    global _warehouse

    if _warehouse is None:
        settings = get_settings()
        client = build_bigquery_client(settings)
        _warehouse = WarehouseClient(
            client,
            dataset=settings.bigquery_dataset_id,
            location=settings.bigquery_location,
        )

    return _warehouse


async def get_warehouse() -> WarehouseClient:
    """Get the warehouse client, initializing it on first use."""
    if _warehouse is None:
        await init_warehouse()

    assert _warehouse is not None, "Warehouse should be initialized after init_warehouse()"

    return _warehouse


async def close_warehouse() -> None:
    """Release the warehouse client. Safe to call when not initialized."""
    global _warehouse

    if _warehouse is not None:
        _warehouse.close()
        _warehouse = None
