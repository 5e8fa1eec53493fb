from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from domoticz_exporter.api.app import create_app
from domoticz_exporter.observability.collector import LAST_PUSH_METRIC
from domoticz_exporter.services.exporter import ExporterContext

ENERGY = {"id": 5, "type": "counter", "sType": "energy", "name": "kWh", "value": 12.3, "time": "2024-01-01 10:00:00", "unit": "kWh"}


def _scrape(client: TestClient) -> dict:
    response = client.get("/metrics")
    assert response.status_code == 200
    return {family.name: family for family in text_string_to_metric_families(response.text)}


@pytest.fixture
def context(settings, clock):
    return ExporterContext(settings, clock=clock)


@pytest.fixture
def client(settings, context):
    with TestClient(create_app(settings, context)) as test_client:
        yield test_client


def test_push_then_scrape(client, clock):
    response = client.post("/domoticz-post", json=ENERGY)
    assert response.status_code == 200
    assert response.json() == {"status": "accepted", "id": 5}

    families = _scrape(client)
    energy = families["domoticz_5_counter_energy"]
    assert energy.type == "counter"
    assert energy.documentation == "Domoticz exporter: Type: 'counter' Dstype: 'energy' Dsname: 'kWh' Unit: 'kWh'"
    assert energy.samples[0].value == 12.3
    assert families[LAST_PUSH_METRIC].samples[0].value == clock()


def test_repeated_push_keeps_one_record(client, context, clock):
    client.post("/domoticz-post", json=ENERGY)
    clock.advance(30)
    client.post("/domoticz-post", json={**ENERGY, "value": 15.0})

    samples = context.store.snapshot_all()
    assert len(samples) == 1
    assert samples[0].value == 15.0
    assert samples[0].expiry == clock() + 600
    assert _scrape(client)["domoticz_5_counter_energy"].samples[0].value == 15.0


def test_sample_disappears_after_twice_the_staleness_window(client, context, clock):
    client.post("/domoticz-post", json=ENERGY)
    clock.advance(600.001)

    assert len(context.store) == 1
    assert "domoticz_5_counter_energy" not in _scrape(client)


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"",
        b'{"id": 5, "type": "counter"}',
        b'{"id": -1, "type": "counter", "sType": "energy", "value": 1}',
        b'{"id": 5, "type": "counter", "sType": "energy", "value": "lots"}',
    ],
)
def test_malformed_push_is_rejected(client, context, body):
    response = client.post("/domoticz-post", content=body, headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert len(context.store) == 0
    assert context.liveness.value == 0.0
    families = _scrape(client)
    assert families[LAST_PUSH_METRIC].samples[0].value == 0.0
    assert not any(name.startswith("domoticz_5") for name in families)


def test_liveness_increases_between_scrapes(client, clock):
    client.post("/domoticz-post", json=ENERGY)
    first = _scrape(client)[LAST_PUSH_METRIC].samples[0].value
    clock.advance(5)
    second = _scrape(client)[LAST_PUSH_METRIC].samples[0].value
    client.post("/domoticz-post", json={**ENERGY, "id": 6})
    third = _scrape(client)[LAST_PUSH_METRIC].samples[0].value
    assert first == second
    assert third > second


def test_push_outcomes_are_counted(client, context):
    client.post("/domoticz-post", json=ENERGY)
    client.post("/domoticz-post", content=b"{", headers={"content-type": "application/json"})
    assert context.registry.get_sample_value("domoticz_exporter_pushes_total", {"status": "accepted"}) == 1.0
    assert context.registry.get_sample_value("domoticz_exporter_pushes_total", {"status": "rejected"}) == 1.0


def test_health_reports_worker(client):
    client.post("/domoticz-post", json=ENERGY)
    assert client.get("/health").json() == {"status": "ok", "worker_alive": True, "samples": 1}


def test_custom_paths(settings, clock):
    custom = settings.model_copy(update={"metrics_path": "/scrape", "push_path": "/push"})
    with TestClient(create_app(custom, ExporterContext(custom, clock=clock))) as client:
        assert client.post("/push", json=ENERGY).status_code == 200
        assert "domoticz_5_counter_energy_total" in client.get("/scrape").text
        assert client.get("/metrics").status_code == 404


def test_push_times_out_when_worker_is_not_running(settings, clock):
    bounded = settings.model_copy(update={"push_timeout_seconds": 0.05})
    context = ExporterContext(bounded, clock=clock)
    # No `with` block, so the startup hook never starts the worker.
    client = TestClient(create_app(bounded, context))
    response = client.post("/domoticz-post", json=ENERGY)
    assert response.status_code == 503
    assert len(context.store) == 0
    assert context.registry.get_sample_value("domoticz_exporter_pushes_total", {"status": "timeout"}) == 1.0


@pytest.mark.asyncio
async def test_concurrent_pushes_to_distinct_ids(settings, clock):
    context = ExporterContext(settings, clock=clock)
    app = create_app(settings, context)
    context.start()
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            responses = await asyncio.gather(
                *(client.post("/domoticz-post", json={**ENERGY, "id": sensor_id, "value": float(sensor_id)}) for sensor_id in range(50))
            )
            assert all(response.status_code == 200 for response in responses)
            scrape = await client.get("/metrics")
    finally:
        context.stop()

    names = [
        family.name
        for family in text_string_to_metric_families(scrape.text)
        if family.name.startswith("domoticz_") and family.name != LAST_PUSH_METRIC
    ]
    exported = [name for name in names if not name.startswith("domoticz_exporter_")]
    assert sorted(exported) == sorted(f"domoticz_{sensor_id}_counter_energy" for sensor_id in range(50))


def test_push_after_shutdown_is_unavailable(client, context):
    context.stop()
    response = client.post("/domoticz-post", json=ENERGY)
    assert response.status_code == 503
    assert len(context.store) == 0
    assert context.registry.get_sample_value("domoticz_exporter_pushes_total", {"status": "unavailable"}) == 1.0
    assert client.get("/health").json()["worker_alive"] is False
