from dataclasses import replace
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from models.records import Reading
from services.dashboard import DashboardService, build_dashboard
from services.source import SourceError
from settings import get_settings


class StubSource:
    def __init__(self, readings: List[Reading], fail: bool = False) -> None:
        self.readings = readings
        self.fail = fail
        self.calls = 0
        self.collections: List[str] = []

    async def __call__(self) -> List[Reading]:
        self.calls += 1
        if self.fail:
            raise SourceError("upstream unavailable")
        return list(self.readings)

    async def fetch_history(self, collection: str) -> List[Reading]:
        self.collections.append(collection)
        if self.fail:
            raise SourceError("history unavailable")
        return list(self.readings)


class LiveOnlySource:
    async def __call__(self) -> List[Reading]:
        return []


def _reading(timestamp: str, level: float) -> Reading:
    return Reading(
        sensor_name="Tank",
        timestamp=timestamp,
        metrics={"level": level, "ph": 7.0, "turbidity": 12.0},
    )


READINGS = [
    _reading("10/05/2024,08:00:00", 45.0),
    _reading("10/05/2024,09:00:00", 55.0),
    _reading("11/05/2024,08:00:00", 30.0),
    _reading("12/05/2024,08:00:00", 90.0),
]


def _install(monkeypatch, source: StubSource) -> List[DashboardService]:
    services: List[DashboardService] = []
    settings = replace(
        get_settings(),
        variant="water",
        poll_interval=3600.0,
        retry_delay=0.0,
        debounce_ms=0,
        default_today=False,
    )

    def build_test_dashboard() -> DashboardService:
        if not services:
            services.append(build_dashboard(settings, source=source))
        return services[0]

    build_test_dashboard.cache_clear = services.clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_dashboard", build_test_dashboard)
    monkeypatch.setattr("app.api.build_default_dashboard", build_test_dashboard)
    return services


@pytest.fixture
def source() -> StubSource:
    return StubSource(READINGS)


@pytest.fixture
def api_client(monkeypatch, source: StubSource) -> Iterator[TestClient]:
    _install(monkeypatch, source)
    app = create_app()
    with TestClient(app) as client:
        client.post("/dashboard/refresh")
        yield client


def test_lifespan_starts_and_stops_polling(monkeypatch, source: StubSource) -> None:
    services = _install(monkeypatch, source)
    app = create_app()

    with TestClient(app):
        service = services[0]
        assert service.scheduler.running is True

    assert service.scheduler.running is False
    assert services == []


def test_dashboard_state_after_refresh(api_client: TestClient, source: StubSource) -> None:
    response = api_client.get("/dashboard")

    assert response.status_code == 200
    payload = response.json()
    assert payload["reading_count"] == 4
    assert payload["selected_date"] is None
    assert [item["timestamp"] for item in payload["visible"]] == [
        "12/05/2024,08:00:00",
        "11/05/2024,08:00:00",
        "10/05/2024,09:00:00",
    ]
    assert payload["has_more"] is True
    assert set(payload["charts"]) == {"level", "ph", "turbidity"}
    assert payload["charts"]["turbidity"]["domain_max"] == 100.0
    assert len(payload["charts"]["level"]["points"]) == 4
    assert payload["error"] is None
    assert payload["loading"] is False


def test_select_date_filters_and_recomputes_statistics(api_client: TestClient) -> None:
    response = api_client.put("/dashboard/date", json={"selected_date": "10/05/2024"})

    assert response.status_code == 202
    payload = response.json()
    assert payload["selected_date"] == "10/05/2024"
    assert [item["timestamp"] for item in payload["filtered"]] == [
        "10/05/2024,09:00:00",
        "10/05/2024,08:00:00",
    ]
    assert payload["statistics"]["level"] == {"mean": 50.0, "min": 45.0, "max": 55.0}
    assert payload["charts"]["level"]["polyline"] == "40.0,102.5 340.0,87.5"


def test_select_date_accepts_iso_format(api_client: TestClient) -> None:
    response = api_client.put("/dashboard/date", json={"selected_date": "2024-05-11"})

    assert response.status_code == 202
    assert len(response.json()["filtered"]) == 1


def test_select_future_date_is_rejected(api_client: TestClient) -> None:
    response = api_client.put("/dashboard/date", json={"selected_date": "2999-01-01"})

    assert response.status_code == 400
    assert "future" in response.json()["detail"]


def test_select_malformed_date_is_unprocessable(api_client: TestClient) -> None:
    response = api_client.put("/dashboard/date", json={"selected_date": "31/02/2024"})

    assert response.status_code == 422


def test_clear_filter_and_toggle_show_all(api_client: TestClient) -> None:
    api_client.put("/dashboard/date", json={"selected_date": "10/05/2024"})

    cleared = api_client.delete("/dashboard/date").json()
    expanded = api_client.post("/dashboard/show-all").json()

    assert cleared["selected_date"] is None
    assert len(cleared["filtered"]) == 4
    assert expanded["show_all"] is True
    assert len(expanded["visible"]) == 4
    assert expanded["has_more"] is False


def test_tooltip_round_trip(api_client: TestClient) -> None:
    response = api_client.post(
        "/dashboard/tooltip",
        json={
            "index": 3,
            "metric": "level",
            "box_left": 0,
            "box_top": 0,
            "box_width": 360,
            "box_height": 200,
            "viewport_width": 1200,
        },
    )

    assert response.status_code == 200
    tooltip = response.json()
    assert tooltip["value"] == 90.0
    assert tooltip["status"] == "excellent"
    assert tooltip["text"] == "90.0%"
    assert tooltip["anchor_x"] == 340.0
    assert api_client.get("/dashboard").json()["tooltip"]["index"] == 3

    closed = api_client.delete("/dashboard/tooltip").json()
    assert closed["tooltip"] is None


@pytest.mark.parametrize(("index", "metric"), [(10, "level"), (0, "pressure")])
def test_tooltip_for_unknown_point_is_not_found(api_client: TestClient, index: int, metric: str) -> None:
    response = api_client.post(
        "/dashboard/tooltip",
        json={
            "index": index,
            "metric": metric,
            "box_left": 0,
            "box_top": 0,
            "box_width": 360,
            "box_height": 200,
            "viewport_width": 1200,
        },
    )

    assert response.status_code == 404


def test_failed_refresh_keeps_previous_readings(api_client: TestClient, source: StubSource) -> None:
    source.fail = True

    payload = api_client.post("/dashboard/refresh").json()

    assert payload["error"] == "upstream unavailable"
    assert payload["reading_count"] == 4


def test_healthcheck(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_history_returns_one_day_view(api_client: TestClient, source: StubSource) -> None:
    response = api_client.get("/dashboard/history/tank-a", params={"date": "2024-05-10"})

    assert response.status_code == 200
    payload = response.json()
    assert source.collections == ["tank-a"]
    assert payload["selected_date"] == "10/05/2024"
    assert payload["show_all"] is True
    assert [item["timestamp"] for item in payload["visible"]] == [
        "10/05/2024,09:00:00",
        "10/05/2024,08:00:00",
    ]
    assert payload["statistics"]["level"] == {"mean": 50.0, "min": 45.0, "max": 55.0}

    live = api_client.get("/dashboard").json()
    assert live["selected_date"] is None
    assert live["reading_count"] == 4


def test_history_upstream_failure_is_bad_gateway(api_client: TestClient, source: StubSource) -> None:
    source.fail = True

    response = api_client.get("/dashboard/history/tank-a", params={"date": "2024-05-10"})

    assert response.status_code == 502
    assert response.json()["detail"] == "history unavailable"


def test_history_for_future_date_is_rejected(api_client: TestClient, source: StubSource) -> None:
    response = api_client.get("/dashboard/history/tank-a", params={"date": "2999-01-01"})

    assert response.status_code == 400
    assert source.collections == []


def test_history_without_history_support_is_not_implemented(monkeypatch) -> None:
    _install(monkeypatch, LiveOnlySource())  # type: ignore[arg-type]
    app = create_app()

    with TestClient(app) as client:
        response = client.get("/dashboard/history/tank-a")

    assert response.status_code == 501
