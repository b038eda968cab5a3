"""
API documentation for FastAPI hosts.

Two phases, run in order:

1. `configure_documentation` (registration, before serving) validates the
   options and replaces the app's OpenAPI generator with one whose document
   carries the configured title, version, description and contact.
2. `use_documentation` (activation, after the host has assembled its
   routes and middleware) serves that document at
   ``/swagger/<version>/swagger.json`` and the Swagger UI at ``/``.
"""

import inspect
import logging
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.routing import APIRoute
from pydantic import AnyUrl, TypeAdapter, ValidationError

from standard_dependencies.errors import InvalidContactUrl, MissingConfiguration
from standard_dependencies.options import DocumentationOptions

_LOGGER = logging.getLogger(__name__)

_URL_ADAPTER = TypeAdapter(AnyUrl)


def document_url(version: str) -> str:
    """Path the generated document is served from."""
    return f"/swagger/{version}/swagger.json"


def docstring_summary(endpoint: Callable[..., Any]) -> Optional[str]:
    """First line of the endpoint's docstring, if it has one."""
    doc = inspect.getdoc(endpoint)
    if not doc:
        return None
    return doc.strip().splitlines()[0].strip() or None


class DocumentedRoute(APIRoute):
    """FastAPI route whose summary defaults to the endpoint docstring's first line.

    An explicit ``summary`` wins; endpoints without a docstring keep
    FastAPI's generated summary. Registration makes it the app's route
    class; routers opt in with ``APIRouter(route_class=DocumentedRoute)``.
    """

    def __init__(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None:
        if kwargs.get("summary") is None:
            kwargs["summary"] = docstring_summary(endpoint)
        super().__init__(path, endpoint, **kwargs)


def build_openapi_document(app: FastAPI, options: DocumentationOptions) -> dict[str, Any]:
    """Generate the OpenAPI document for ``app`` described by ``options``."""
    return get_openapi(
        title=options.title,
        version=options.version,
        description=options.description,
        contact={"name": options.contact_name, "url": options.contact_url},
        routes=app.routes,
        openapi_version=app.openapi_version,
        tags=app.openapi_tags,
        servers=app.servers,
    )


def configure_documentation(
    app: FastAPI, options: Optional[DocumentationOptions]
) -> None:
    """Register API document generation for ``app``.

    :param app: Host FastAPI application.
    :type app: FastAPI
    :param options: Documentation options bound from configuration.
    :type options: DocumentationOptions
    :raises MissingConfiguration: If ``options`` is None.
    :raises InvalidContactUrl: If the contact URL does not parse as a URL.
    """
    if options is None:
        raise MissingConfiguration(DocumentationOptions.section_name)

    try:
        _URL_ADAPTER.validate_python(options.contact_url)
    except ValidationError as e:
        raise InvalidContactUrl(options.contact_url) from e

    app.title = options.title
    app.version = options.version
    app.description = options.description
    app.contact = {"name": options.contact_name, "url": options.contact_url}
    app.openapi_schema = None
    app.router.route_class = DocumentedRoute

    def openapi() -> dict[str, Any]:
        if app.openapi_schema is None:
            app.openapi_schema = build_openapi_document(app, options)
        return app.openapi_schema

    app.openapi = openapi  # type: ignore[method-assign]
    app.state.documentation = options
    _LOGGER.debug("📚 Registered API document %s (%s).", options.version, options.title)


def use_documentation(app: FastAPI, options: Optional[DocumentationOptions]) -> None:
    """Serve the API document and the Swagger UI.

    :param app: Host FastAPI application, already registered with
        `configure_documentation`.
    :type app: FastAPI
    :param options: The options the document was registered with.
    :type options: DocumentationOptions
    :raises MissingConfiguration: If ``options`` is None.
    :raises RuntimeError: If registration has not run for ``app``.
    """
    if options is None:
        raise MissingConfiguration(DocumentationOptions.section_name)

    if getattr(app.state, "documentation", None) is None:
        raise RuntimeError(
            "API documentation must be registered before it is served."
        )

    openapi_url = document_url(options.version)

    async def openapi_document(_: Request) -> JSONResponse:
        return JSONResponse(app.openapi())

    async def swagger_ui(request: Request) -> HTMLResponse:
        root_path = request.scope.get("root_path", "").rstrip("/")
        return get_swagger_ui_html(
            openapi_url=root_path + openapi_url,
            title=options.title,
        )

    app.add_route(openapi_url, openapi_document, include_in_schema=False)
    app.add_route("/", swagger_ui, include_in_schema=False)
    _LOGGER.debug("📚 Serving API document at %s and Swagger UI at /.", openapi_url)
