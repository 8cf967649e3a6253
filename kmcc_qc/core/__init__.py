"""
Core infrastructure package for the KMCC QC forecast backend.

Provides:
- Configuration management via pydantic-settings
- BigQuery warehouse client lifecycle
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from kmcc_qc.core import get_settings, get_warehouse, WarehouseDep
"""

from kmcc_qc.core.config import Settings, get_settings

from kmcc_qc.core.warehouse import (
    WarehouseClient,
    init_warehouse,
    get_warehouse,
    close_warehouse,
)

from kmcc_qc.core.dependencies import (
    get_warehouse_client,
    get_settings_dependency,
    get_today,
    WarehouseDep,
    SettingsDep,
    TodayDep,
)


__all__ = [
    # Configuration management
    'Settings',
    'get_settings',
    # Warehouse lifecycle
    'WarehouseClient',
    'init_warehouse',
    'get_warehouse',
    'close_warehouse',
    # FastAPI dependency injection
    'get_warehouse_client',
    'get_settings_dependency',
    'get_today',
    'WarehouseDep',
    'SettingsDep',
    'TodayDep',
]
