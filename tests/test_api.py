import logging

import pytest
from fastapi.testclient import TestClient

from schemaflow.api import create_app
from schemaflow.errors import StoreUnavailableError
from schemaflow.ingest import Ingestor
from schemaflow.storage import create_client


TOKEN = {"X-API-Token": "s3cret"}


@pytest.fixture
def api(config):
    with TestClient(create_app(config)) as client:
        yield client


def test_health_needs_no_token(api):
    r = api.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_startup_creates_table(api, config):
    with create_client(config) as client:
        assert client.get_current_columns() == ["Id", "Payload"]


def test_missing_token(api):
    r = api.post("/mfrequest", json={"a": 1})
    assert r.status_code == 401
    assert r.json() == {"error": "Missing API token"}


def test_invalid_token(api):
    r = api.post("/mfrequest", json={"a": 1}, headers={"X-API-Token": "nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid API token"}


def test_token_check_covers_subpaths(api):
    r = api.post("/mfrequest/extra", json={})
    assert r.status_code == 401


def test_stores_document(api, read_rows):
    raw = '{"a": 1, "b": {"c": "x"}}'
    r = api.post("/mfrequest", content=raw, headers={**TOKEN, "Content-Type": "application/json"})

    assert r.status_code == 200
    assert r.json() == {"status": "Mankiflow sagt Danke", "received": {"a": 1, "b": {"c": "x"}}}
    assert read_rows() == [{"Id": 1, "Payload": raw, "a": "1", "b_c": "x"}]


def test_any_json_value_accepted(api, read_rows):
    r = api.post("/mfrequest", json=[1, 2, 3], headers=TOKEN)
    assert r.status_code == 200
    assert r.json()["received"] == [1, 2, 3]
    assert read_rows()[0]["rootValue"] == "[1,2,3]"


def test_out_of_range_number_stored_and_acknowledged(api, read_rows):
    raw = '{"x": 1e400}'
    r = api.post("/mfrequest", content=raw, headers={**TOKEN, "Content-Type": "application/json"})

    assert r.status_code == 200
    assert r.text == '{"status":"Mankiflow sagt Danke","received":{"x": 1e400}}'
    assert read_rows() == [{"Id": 1, "Payload": raw, "x": "1e400"}]


def test_received_echoes_numbers_as_sent(api):
    raw = '{"pi": 3.141592653589793238462643}'
    r = api.post("/mfrequest", content=raw, headers={**TOKEN, "Content-Type": "application/json"})

    assert r.status_code == 200
    assert r.text.endswith('"received":{"pi": 3.141592653589793238462643}}')


def test_openapi_declares_token_header(api):
    schema = api.get("/openapi.json").json()

    schemes = schema["components"]["securitySchemes"]
    assert schemes["ApiToken"] == {"type": "apiKey", "in": "header", "name": "X-API-Token"}
    assert schema["paths"]["/mfrequest"]["post"]["security"] == [{"ApiToken": []}]


def test_malformed_json(api, read_rows):
    r = api.post("/mfrequest", content="{oops", headers={**TOKEN, "Content-Type": "application/json"})
    assert r.status_code == 400
    assert "not valid JSON" in r.json()["error"]
    assert read_rows() == []


def test_store_failure_is_server_error(config):
    def unavailable():
        raise StoreUnavailableError("Can't connect to MySQL server")

    app = create_app(config, ingestor=Ingestor(config, client_factory=unavailable))
    with TestClient(app) as client:
        r = client.post("/mfrequest", json={"a": 1}, headers=TOKEN)

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to store document"}


def test_requests_are_logged(api, caplog):
    with caplog.at_level(logging.INFO, logger="schemaflow.api"):
        api.get("/health?probe=1")
    assert "Incoming request: GET /health?probe=1" in caplog.text
