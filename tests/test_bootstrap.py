import json
import logging
import re

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sample_api.main import create_app
from standard_dependencies import (
    HostConfiguration,
    InvalidContactUrl,
    JsonFormatter,
    MissingConfiguration,
    Telemetry,
    configure_common_elements,
    use_standardized_swagger,
)


def test_configure_common_elements_requires_both_option_records(
    telemetry_options, documentation_options
):
    with pytest.raises(MissingConfiguration) as exc_info:
        configure_common_elements(FastAPI(), None, documentation_options)
    assert exc_info.value.section == "OpenTelemetry"

    with pytest.raises(MissingConfiguration) as exc_info:
        configure_common_elements(FastAPI(), telemetry_options, None)
    assert exc_info.value.section == "Swagger"


def test_use_standardized_swagger_requires_options():
    with pytest.raises(MissingConfiguration) as exc_info:
        use_standardized_swagger(FastAPI(), None)

    assert exc_info.value.section == "Swagger"


def test_configure_common_elements_wires_telemetry_and_documentation(
    telemetry_options, documentation_options, shutdown_app_telemetry
):
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    shutdown_app_telemetry(app)

    telemetry = configure_common_elements(app, telemetry_options, documentation_options)
    use_standardized_swagger(app, documentation_options)

    assert isinstance(telemetry, Telemetry)
    assert app.state.telemetry is telemetry
    assert app.state.documentation == documentation_options

    client = TestClient(app)
    assert client.get("/").status_code == 200
    assert client.get("/swagger/v1/swagger.json").json()["info"]["title"] == "Orders API"


def test_invalid_contact_url_fails_before_serving(
    telemetry_options, documentation_options, shutdown_app_telemetry
):
    app = FastAPI()
    shutdown_app_telemetry(app)
    options = documentation_options.model_copy(update={"contact_url": "not a url"})

    with pytest.raises(InvalidContactUrl):
        configure_common_elements(app, telemetry_options, options)


@pytest.fixture
def orders_configuration(monkeypatch, tmp_path) -> HostConfiguration:
    monkeypatch.chdir(tmp_path)
    return HostConfiguration(
        OpenTelemetry={"ServiceName": "orders-api", "Exporters": ["Console"]},
        Swagger={"Version": "v2", "Title": "Orders API"},
    )


def test_orders_api_end_to_end(orders_configuration, caplog):
    caplog.set_level(logging.INFO)

    with TestClient(create_app(orders_configuration)) as client:
        ui = client.get("/")
        document = client.get("/swagger/v2/swagger.json")
        order = client.get("/orders/o-1")

    assert ui.status_code == 200
    assert "<title>Orders API</title>" in ui.text
    assert document.json()["info"]["version"] == "v2"
    paths = document.json()["paths"]
    assert paths["/orders/{order_id}"]["get"]["summary"] == (
        "Fetch a single order by its identifier."
    )
    assert order.status_code == 200
    assert order.json()["item"] == "Rain gauge"

    (record,) = [r for r in caplog.records if r.getMessage() == "Order found"]
    line = json.loads(JsonFormatter().format(record))
    assert line["service.name"] == "orders-api"
    assert re.fullmatch(r"[0-9a-f]{32}", line["trace_id"])
    assert line["trace_id"] != "0" * 32


def test_orders_api_reports_missing_orders(orders_configuration):
    with TestClient(create_app(orders_configuration)) as client:
        response = client.get("/orders/o-404")

    assert response.status_code == 404
