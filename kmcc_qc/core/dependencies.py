"""
FastAPI dependency injection module for the KMCC QC forecast backend.

Provides reusable dependencies for the warehouse client, configuration
access, and the request's reference date. Endpoints receive these through
type aliases, and tests replace them with app.dependency_overrides.

Key Dependencies Provided:
- get_warehouse_client: Returns the shared WarehouseClient
- get_settings_dependency: Returns the cached Settings singleton
- get_today: Returns the reference date for month progress
- WarehouseDep / SettingsDep / TodayDep: Annotated aliases

Usage Examples:
    @router.get("")
    async def get_predictions(
        warehouse: WarehouseDep,
        settings: SettingsDep,
        today: TodayDep,
    ):
        ...

    # In tests
    app.dependency_overrides[get_today] = lambda: date(2026, 1, 19)
"""

from datetime import date
from typing import Annotated

from fastapi import Depends

from kmcc_qc.core.config import Settings, get_settings
from kmcc_qc.core.warehouse import WarehouseClient, get_warehouse


# =============================================================================
# Warehouse Dependency
# =============================================================================

async def get_warehouse_client() -> WarehouseClient:
    """
    Return the shared warehouse client.

    Raises:
        ValueError: If BIGQUERY_CREDENTIALS is malformed.
    """
    return await get_warehouse()


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can do:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Clock Dependency
# =============================================================================

def get_today() -> date:
    """
    Return the reference date of the request.

    The forecasting engine never reads the wall clock; days passed and days
    remaining in the month are derived from this value at the call site.
    """
    return date.today()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

WarehouseDep = Annotated[WarehouseClient, Depends(get_warehouse_client)]

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

TodayDep = Annotated[date, Depends(get_today)]
