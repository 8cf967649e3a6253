"""
Pytest Configuration and Shared Fixtures for KMCC QC Forecast Tests.

Provides:
- Fixed Settings instances (no .env, no Slack webhook unless requested)
- A fake warehouse that answers the three pipeline queries from canned rows
- Canned warehouse rows for two groups and three agents in January 2026
- A FastAPI TestClient with the warehouse, settings and clock overridden

Reference scenario (today = 2026-01-19, 19 days passed, 12 remaining):
- 용산 택배/유선: attitude [2.8, 3.0, 3.2] and ops [3.6, 3.5, 3.4], on track
- 광주 보험/채팅: attitude [4.0, 5.0, 7.0] and ops [2.0, 2.5, 4.0], critical
"""

from datetime import date
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from kmcc_qc.core.config import Settings


TODAY = date(2026, 1, 19)
MONTH = "2026-01"


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """Register the integration marker used for warehouse-backed tests."""
    config.addinivalue_line(
        "markers", "integration: tests that exercise the pipeline through the fake warehouse"
    )


# ============================================================
# SETTINGS FIXTURES
# ============================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults only; .env files and the webhook are ignored."""
    return Settings(_env_file=None, slack_webhook_url=None, bigquery_credentials=None)


@pytest.fixture
def slack_settings() -> Settings:
    """Settings with a Slack webhook configured."""
    return Settings(
        _env_file=None,
        slack_webhook_url="https://hooks.slack.com/services/T000/B000/XXXX",
        bigquery_credentials=None,
    )


# ============================================================
# WAREHOUSE ROW FIXTURES
# ============================================================

def _group_rows(center, service, channel, total, attitude, ops, weeks) -> List[Dict[str, Any]]:
    return [
        {
            "center": center,
            "service": service,
            "channel": channel,
            "total_checks": total,
            "current_attitude_rate": attitude,
            "current_ops_rate": ops,
            "week": week,
            "checks": checks,
            "attitude_rate": week_attitude,
            "ops_rate": week_ops,
        }
        for week, checks, week_attitude, week_ops in weeks
    ]


@pytest.fixture
def group_rows() -> List[Dict[str, Any]]:
    """Rows of the group weekly rates query, one per group and week."""
    return (
        _group_rows(
            "광주", "보험", "채팅", 60, 6.0, 4.0,
            [("W1", 20, 4.0, 2.0), ("W2", 20, 5.0, 2.5), ("W3", 20, 7.0, 4.0)],
        )
        + _group_rows(
            "용산", "택배", "유선", 120, 3.0, 3.5,
            [("W1", 40, 2.8, 3.6), ("W2", 40, 3.0, 3.5), ("W3", 40, 3.2, 3.4)],
        )
    )


@pytest.fixture
def agent_rows() -> List[Dict[str, Any]]:
    """Rows of the agent rates query, highest combined rate first."""
    return [
        {
            "agent_id": "B002",
            "agent_name": "이상담",
            "center": "광주",
            "service": "보험",
            "channel": "채팅",
            "evaluation_count": 10,
            "attitude_rate": 12.0,
            "ops_rate": 7.0,
            "consult_type_errors": 5,
            "unkind_errors": 2,
        },
        {
            "agent_id": "A001",
            "agent_name": "김상담",
            "center": "용산",
            "service": "택배",
            "channel": "유선",
            "evaluation_count": 20,
            "attitude_rate": 6.5,
            "ops_rate": 3.0,
            "empathy_errors": 4,
            "guide_errors": 2,
            "greeting_errors": 1,
            "apology_errors": 3,
        },
        {
            "agent_id": "C003",
            "agent_name": "박상담",
            "center": "용산",
            "service": "택배",
            "channel": "유선",
            "evaluation_count": 15,
            "attitude_rate": 2.0,
            "ops_rate": 3.0,
        },
    ]


# ============================================================
# FAKE WAREHOUSE
# ============================================================

class FakeWarehouse:
    """
    Stand-in for WarehouseClient that routes queries by their shape.

    Each query kind can return canned rows or raise a canned exception.
    `fetch` is an AsyncMock so tests can inspect the calls.
    """

    def __init__(
        self,
        group_rows: Optional[List[Dict[str, Any]]] = None,
        agent_rows: Optional[List[Dict[str, Any]]] = None,
        target_rows: Optional[List[Dict[str, Any]]] = None,
        simple_target_error: Optional[Exception] = None,
        period_target_error: Optional[Exception] = None,
        group_error: Optional[Exception] = None,
    ) -> None:
        self.dataset = "KMCC_QC"
        self.location = "asia-northeast3"
        self.group_rows = group_rows or []
        self.agent_rows = agent_rows or []
        self.target_rows = target_rows or []
        self.simple_target_error = simple_target_error
        self.period_target_error = period_target_error
        self.group_error = group_error
        self.fetch = AsyncMock(side_effect=self._route)

    async def _route(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        if "agent_errors" in query:
            return list(self.agent_rows)
        if "weekly_data" in query:
            if self.group_error:
                raise self.group_error
            return list(self.group_rows)
        if ".targets`" in query:
            if "period_start" in query:
                if self.period_target_error:
                    raise self.period_target_error
            elif self.simple_target_error:
                raise self.simple_target_error
            return list(self.target_rows)
        raise AssertionError(f"Unexpected query: {query}")

    def queries(self) -> List[str]:
        return [c.args[0] for c in self.fetch.call_args_list]


@pytest.fixture
def fake_warehouse(group_rows, agent_rows) -> FakeWarehouse:
    """Warehouse with both groups and all agents; the targets table is empty."""
    return FakeWarehouse(group_rows=group_rows, agent_rows=agent_rows)


# ============================================================
# HTTP CLIENT
# ============================================================

@pytest.fixture
def client(fake_warehouse, test_settings):
    """
    TestClient with the warehouse, settings and today overridden.

    The lifespan is not entered, so no BigQuery client is created.
    """
    from kmcc_qc.core.dependencies import (
        get_settings_dependency,
        get_today,
        get_warehouse_client,
    )
    from kmcc_qc.main import app

    app.dependency_overrides[get_warehouse_client] = lambda: fake_warehouse
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    app.dependency_overrides[get_today] = lambda: TODAY

    yield TestClient(app)

    app.dependency_overrides.clear()


# ============================================================
# SLACK FIXTURES
# ============================================================

@pytest.fixture
def mock_slack_client():
    """Patch WebhookClient in the digest job with a client returning 200."""
    response = Mock()
    response.status_code = 200
    response.body = "ok"

    client = Mock()
    client.send.return_value = response

    with patch("kmcc_qc.jobs.watch_list_digest.WebhookClient", return_value=client) as factory:
        factory.instance = client
        yield factory
