"""
Contract tests for the /predictions endpoints.

Uses FastAPI's TestClient with the warehouse, settings and today replaced
through app.dependency_overrides (see conftest.py).
"""

from fastapi.testclient import TestClient

from kmcc_qc.core.dependencies import get_warehouse_client
from kmcc_qc.tests.conftest import MONTH


class TestPredictionsEndpoint:

    def test_response_shape(self, client):
        response = client.get("/predictions", params={"month": MONTH})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["month"] == MONTH
        assert body["data"]["summary"]["totalGroups"] == 2
        assert body["data"]["summary"]["atRiskGroups"] == 1

        group = body["data"]["predictions"][1]
        assert group["serviceChannel"] == "택배_유선"
        assert set(group["attitudePrediction"]) == {
            "currentRate", "predictedRate", "targetRate", "achievementProbability",
            "trend", "riskLevel", "weeklyRates", "w4Predicted",
        }
        assert group["attitudePrediction"]["predictedRate"] == 3.15
        assert group["attitudePrediction"]["trend"] == "stable"
        assert group["overallRiskLevel"] == "low"
        assert group["alertFlag"] is False

    def test_month_defaults_to_today(self, client):
        response = client.get("/predictions")

        assert response.status_code == 200
        assert response.json()["data"]["month"] == "2026-01"

    def test_malformed_month_defaults_to_today(self, client):
        response = client.get("/predictions", params={"month": "2026-13"})

        assert response.json()["data"]["month"] == "2026-01"

    def test_center_filter(self, client):
        response = client.get("/predictions", params={"center": "광주"})

        predictions = response.json()["data"]["predictions"]
        assert [p["center"] for p in predictions] == ["광주"]
        assert predictions[0]["watchListReason"][0] == "[태도] 목표 달성 확률 30% 미만"

    def test_probability_method(self, client):
        statistical = client.get("/predictions").json()
        heuristic = client.get("/predictions", params={"method": "trend_heuristic"}).json()

        assert statistical["data"]["predictions"][1]["attitudePrediction"]["achievementProbability"] == 81
        assert heuristic["data"]["predictions"][1]["attitudePrediction"]["achievementProbability"] == 100

    def test_unknown_method_is_rejected(self, client):
        response = client.get("/predictions", params={"method": "magic"})

        assert response.status_code == 422

    def test_failure_returns_500_envelope(self, client, fake_warehouse):
        fake_warehouse.group_error = RuntimeError("Access Denied: BigQuery")

        response = client.get("/predictions")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Access Denied: BigQuery"}


class TestAgentEndpoints:

    def test_agents(self, client):
        response = client.get("/predictions/agents", params={"month": MONTH})

        assert response.status_code == 200
        agents = response.json()["data"]["agents"]
        assert [a["agentId"] for a in agents] == ["B002", "A001", "C003"]
        assert agents[1]["mainErrors"][0] == {"name": "공감표현누락", "count": 4, "rate": 20.0}

    def test_watch_list(self, client):
        response = client.get("/predictions/watch-list")

        assert response.status_code == 200
        data = response.json()["data"]
        assert [g["serviceChannel"] for g in data["groups"]] == ["보험_채팅"]
        assert [a["agentId"] for a in data["agents"]] == ["B002", "A001"]
        assert data["summary"]["groups"] == 1

    def test_watch_list_failure(self, client, fake_warehouse):
        fake_warehouse.group_error = RuntimeError("boom")

        response = client.get("/predictions/watch-list")

        assert response.status_code == 500
        assert response.json()["success"] is False


class TestCenterEndpoint:

    def test_centers(self, client):
        response = client.get("/predictions/centers")

        assert response.status_code == 200
        centers = response.json()["data"]["centers"]
        assert [c["center"] for c in centers] == ["광주", "용산"]
        assert centers[0]["overallRiskLevel"] == "critical"
        assert centers[1]["ops"]["target"] == 3.9


class TestServiceEndpoints:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "KMCC QC Forecast API"
        assert body["docs"] == "/docs"


class TestDependencyFailures:

    @staticmethod
    def _failing_client(client):
        def broken_warehouse():
            raise ValueError("Invalid BIGQUERY_CREDENTIALS format")

        client.app.dependency_overrides[get_warehouse_client] = broken_warehouse
        return TestClient(client.app, raise_server_exceptions=False)

    def test_warehouse_failure_returns_500_envelope(self, client):
        failing = self._failing_client(client)

        response = failing.get("/predictions")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {
            "success": False,
            "error": "Invalid BIGQUERY_CREDENTIALS format",
        }

    def test_every_endpoint_uses_envelope(self, client):
        failing = self._failing_client(client)

        for path in ("/predictions/agents", "/predictions/watch-list", "/predictions/centers"):
            response = failing.get(path)
            assert response.status_code == 500
            assert response.json()["success"] is False
