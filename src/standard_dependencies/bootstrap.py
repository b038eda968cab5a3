"""
Common startup sequence for FastAPI services.

Typical host usage::

    telemetry_options, documentation_options = load_options(HostConfiguration())

    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    configure_common_elements(app, telemetry_options, documentation_options)
    app.include_router(router)
    app.add_middleware(...)
    use_standardized_swagger(app, documentation_options)
"""

from typing import Optional

from fastapi import FastAPI

from standard_dependencies.documentation import (
    configure_documentation,
    use_documentation,
)
from standard_dependencies.errors import MissingConfiguration
from standard_dependencies.options import DocumentationOptions, TelemetryOptions
from standard_dependencies.telemetry import Telemetry, configure_telemetry


def configure_common_elements(
    app: FastAPI,
    telemetry_options: Optional[TelemetryOptions] = None,
    documentation_options: Optional[DocumentationOptions] = None,
    environment: Optional[str] = None,
) -> Telemetry:
    """Configure telemetry and register API documentation for ``app``.

    :param app: Host FastAPI application.
    :type app: FastAPI
    :param telemetry_options: Options bound from the `OpenTelemetry` section.
    :type telemetry_options: TelemetryOptions
    :param documentation_options: Options bound from the `Swagger` section.
    :type documentation_options: DocumentationOptions
    :param environment: Deployment environment override.
    :type environment: str | None
    :raises MissingConfiguration: If either option record is absent.
    :return: The configured telemetry.
    :rtype: Telemetry
    """
    if telemetry_options is None:
        raise MissingConfiguration(TelemetryOptions.section_name)
    if documentation_options is None:
        raise MissingConfiguration(DocumentationOptions.section_name)

    telemetry = configure_telemetry(app, telemetry_options, environment=environment)
    configure_documentation(app, documentation_options)
    return telemetry


def use_standardized_swagger(
    app: FastAPI, documentation_options: Optional[DocumentationOptions] = None
) -> None:
    """Serve the API document and Swagger UI. Call once routes are assembled."""
    use_documentation(app, documentation_options)
