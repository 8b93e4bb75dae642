"""
API tests.

The pipeline and the database session are replaced through FastAPI
dependency overrides; store helpers are patched where routers import them.

pytest backend/tests/test_api.py -v
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from stockanalyst.db.database import get_db
from stockanalyst.db.models import StockAnalysis
from stockanalyst.main import app
from stockanalyst.schemas.analysis import StepStatus
from stockanalyst.services.analysis import AnalysisResult, get_analysis_pipeline
from stockanalyst.services.base import (
    AllProvidersExhausted,
    ConfigurationError,
    StoreError,
    UpstreamHttpError,
)

client = TestClient(app)

ANALYSIS_MODULE = "stockanalyst.api.v1.endpoints.analysis"
HISTORY_MODULE = "stockanalyst.api.v1.endpoints.history"


def make_row(**overrides) -> StockAnalysis:
    values = dict(
        id="a1b2c3",
        symbol="AAPL",
        analysis_type="trend_and_sr",
        analysis_text="## AAPL Trend Analysis\n\nOverall trend: bullish uptrend.",
        created_at=datetime(2024, 7, 15, 15, 0),
        updated_at=datetime(2024, 7, 15, 15, 0),
    )
    values.update(overrides)
    return StockAnalysis(**values)


def parse_sse(body: str) -> list[tuple[str, dict]]:
    events = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


@pytest.fixture
def pipeline():
    pipeline = MagicMock()
    app.dependency_overrides[get_analysis_pipeline] = lambda: pipeline
    yield pipeline
    app.dependency_overrides.pop(get_analysis_pipeline, None)


@pytest.fixture
def db_session():
    session = MagicMock()

    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    yield session
    app.dependency_overrides.pop(get_db, None)


class TestRunAnalysis:
    """POST /api/v1/analysis/run"""

    def test_run_success(self, pipeline):
        pipeline.execute = AsyncMock(return_value=AnalysisResult(
            symbol="AAPL",
            analysis_text="combined report",
            analysis_id="new-id",
        ))

        response = client.post("/api/v1/analysis/run", json={"symbol": "aapl"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["analysis"] == "combined report"
        assert data["analysis_type"] == "trend_and_sr"
        assert data["analysis_id"] == "new-id"
        assert data["cached"] is False
        assert pipeline.execute.await_args.args[0].symbol == "aapl"

    def test_missing_symbol_is_422(self, pipeline):
        response = client.post("/api/v1/analysis/run", json={})
        assert response.status_code == 422

    def test_blank_symbol_is_400(self, pipeline):
        pipeline.execute = AsyncMock(side_effect=ValueError("Symbol is required"))

        response = client.post("/api/v1/analysis/run", json={"symbol": "  "})

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Symbol is required"

    def test_configuration_error_is_503(self, pipeline):
        pipeline.execute = AsyncMock(side_effect=ConfigurationError(
            "Settings", "HISTORICAL_DATA_API_KEY is not configured."
        ))

        response = client.post("/api/v1/analysis/run", json={"symbol": "AAPL"})

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["message"] == "HISTORICAL_DATA_API_KEY is not configured."
        assert [s["id"] for s in detail["steps"]][0] == "check_cache"
        assert len(detail["steps"]) == 6

    @pytest.mark.parametrize(
        "error",
        [
            UpstreamHttpError("HistoricalData", "Rate limit exceeded", status=429),
            AllProvidersExhausted("All AI providers failed. Primary (perplexity): a. Fallback (deepseek): b", {}),
        ],
    )
    def test_upstream_errors_are_502(self, pipeline, error):
        pipeline.execute = AsyncMock(side_effect=error)

        response = client.post("/api/v1/analysis/run", json={"symbol": "AAPL"})

        assert response.status_code == 502
        assert response.json()["detail"]["message"] == str(error)

    def test_store_error_is_500(self, pipeline):
        pipeline.execute = AsyncMock(side_effect=StoreError("Database", "Failed to save analysis: disk full"))

        response = client.post("/api/v1/analysis/run", json={"symbol": "AAPL"})

        assert response.status_code == 500
        assert response.json()["detail"]["message"] == "Failed to save analysis: disk full"


class TestStreamAnalysis:
    """POST /api/v1/analysis/stream"""

    def test_stream_emits_steps_then_result(self, pipeline):
        async def fake_execute(request):
            request.progress.update("check_cache", StepStatus.LOADING)
            request.progress.update("check_cache", StepStatus.COMPLETED)
            return AnalysisResult(symbol="AAPL", analysis_text="report", analysis_id="id-1")

        pipeline.execute = fake_execute

        response = client.post("/api/v1/analysis/stream", json={"symbol": "AAPL"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert [name for name, _ in events] == ["step", "step", "result"]
        assert events[0][1] == {
            "id": "check_cache",
            "label": "Checking for recent analysis",
            "status": "loading",
            "error": None,
        }
        assert events[-1][1]["analysis"] == "report"
        assert events[-1][1]["analysis_id"] == "id-1"

    def test_stream_emits_error_event(self, pipeline):
        async def fake_execute(request):
            request.progress.update("fetch_historical", StepStatus.LOADING)
            request.progress.update("fetch_historical", StepStatus.ERROR, error="Rate limit exceeded")
            raise UpstreamHttpError("HistoricalData", "Rate limit exceeded", status=429)

        pipeline.execute = fake_execute

        response = client.post("/api/v1/analysis/stream", json={"symbol": "AAPL"})

        events = parse_sse(response.text)
        name, data = events[-1]
        assert name == "error"
        assert data["status_code"] == 502
        assert data["message"] == "Rate limit exceeded"
        failed = next(s for s in data["steps"] if s["id"] == "fetch_historical")
        assert failed["status"] == "error"


class TestReadAnalysis:
    """GET /api/v1/analysis/recent/{symbol}, GET /api/v1/analysis/{id}"""

    def test_recent_found(self, pipeline):
        pipeline.find_cached = AsyncMock(return_value=make_row())

        response = client.get("/api/v1/analysis/recent/aapl")

        assert response.status_code == 200
        assert response.json()["id"] == "a1b2c3"
        pipeline.find_cached.assert_awaited_once_with("AAPL")

    def test_recent_missing_is_404(self, pipeline):
        pipeline.find_cached = AsyncMock(return_value=None)

        response = client.get("/api/v1/analysis/recent/AAPL")

        assert response.status_code == 404

    def test_get_by_id(self, db_session):
        with patch(f"{ANALYSIS_MODULE}.get_analysis", new=AsyncMock(return_value=make_row())) as get:
            response = client.get("/api/v1/analysis/a1b2c3")

        assert response.status_code == 200
        assert response.json()["symbol"] == "AAPL"
        assert get.await_args.args == (db_session, "a1b2c3")

    def test_get_by_id_missing(self, db_session):
        with patch(f"{ANALYSIS_MODULE}.get_analysis", new=AsyncMock(return_value=None)):
            response = client.get("/api/v1/analysis/nope")

        assert response.status_code == 404


class TestSaveAnalysis:
    """POST /api/v1/analysis"""

    def test_save(self, db_session):
        row = make_row(id="saved-id")
        with patch(f"{ANALYSIS_MODULE}.insert_analysis", new=AsyncMock(return_value=row)) as insert:
            response = client.post(
                "/api/v1/analysis",
                json={"symbol": " aapl ", "analysis_type": "trend_and_sr", "analysis_text": "report"},
            )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["id"] == "saved-id"
        assert data["message"] == "Analysis saved successfully"
        assert insert.await_args.args == (db_session, "AAPL", "trend_and_sr", "report")

    def test_save_rejects_blank_text(self, db_session):
        response = client.post("/api/v1/analysis", json={"symbol": "AAPL", "analysis_text": "   "})
        assert response.status_code == 422

    def test_save_rejects_unknown_type(self, db_session):
        response = client.post(
            "/api/v1/analysis",
            json={"symbol": "AAPL", "analysis_type": "news", "analysis_text": "report"},
        )
        assert response.status_code == 422


class TestHistory:
    """GET /api/v1/history"""

    def test_history_page(self, db_session):
        rows = [make_row(), make_row(id="d4e5f6", symbol="PAA", analysis_type="combined")]
        with patch(f"{HISTORY_MODULE}.list_analyses", new=AsyncMock(return_value=(rows, 21))) as list_mock:
            response = client.get("/api/v1/history?search=aa&analysis_type=trend_and_sr&sort=oldest&page=2")

        assert response.status_code == 200
        data = response.json()
        assert data["page"] == 2
        assert data["page_size"] == 20
        assert data["total_count"] == 21
        assert data["total_pages"] == 2

        first = data["items"][0]
        assert first["type_label"] == "Trend & Support/Resistance"
        assert first["overall_trend"] == "Bullish"
        assert first["created_at_et"] == "July 15, 2024 at 11:00 AM EDT"
        assert first["created_at_relative"] == "Jul 15, 2024 EDT"
        assert first["preview"]
        assert data["items"][1]["type_label"] == "Combined Analysis"

        kwargs = list_mock.await_args.kwargs
        assert kwargs["search"] == "aa"
        assert kwargs["analysis_type"] == "trend_and_sr"
        assert kwargs["newest_first"] is False
        assert kwargs["page"] == 2
        assert kwargs["page_size"] == 20

    def test_history_item_relative_date(self, db_session):
        just_now = datetime.now(timezone.utc).replace(tzinfo=None)
        with patch(f"{HISTORY_MODULE}.list_analyses", new=AsyncMock(return_value=([make_row(created_at=just_now)], 1))):
            response = client.get("/api/v1/history")

        assert response.json()["items"][0]["created_at_relative"] == "Today"

    def test_history_defaults(self, db_session):
        with patch(f"{HISTORY_MODULE}.list_analyses", new=AsyncMock(return_value=([], 0))) as list_mock:
            response = client.get("/api/v1/history")

        assert response.status_code == 200
        assert response.json()["total_pages"] == 0
        assert list_mock.await_args.kwargs["newest_first"] is True
        assert list_mock.await_args.kwargs["search"] is None

    def test_history_invalid_sort(self, db_session):
        response = client.get("/api/v1/history?sort=random")
        assert response.status_code == 422

    def test_history_store_error(self, db_session):
        error = StoreError("Database", "Failed to list analyses: locked")
        with patch(f"{HISTORY_MODULE}.list_analyses", new=AsyncMock(side_effect=error)):
            response = client.get("/api/v1/history")

        assert response.status_code == 500


class TestMarketAndHealth:
    def test_market_session(self):
        response = client.get("/api/v1/market/session")

        assert response.status_code == 200
        data = response.json()
        assert "is_open" in data
        assert data["current_period_type"] in ("trading", "non-trading")
        assert data["description"].startswith("Currently in")

    def test_market_period_at_instant(self):
        response = client.get("/api/v1/market/period", params={"at": "2024-07-15T14:00:00Z"})

        assert response.status_code == 200
        data = response.json()
        assert data["is_currently_trading_hours"] is True
        assert data["period_start_utc"] == "2024-07-15T13:30:00+00:00"
        assert data["period_end_utc"] == "2024-07-15T20:00:00+00:00"

    @pytest.mark.parametrize("path", ["/health", "/api/v1/health"])
    def test_health(self, path):
        response = client.get(path)

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert isinstance(response.json()["missing_credentials"], list)
