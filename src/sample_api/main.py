import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from pydantic_settings import SettingsConfigDict

from sample_api.router import router as orders_router
from standard_dependencies import (
    HostConfiguration,
    configure_common_elements,
    get_logging_config,
    load_options,
    use_standardized_swagger,
)

_LOGGER = logging.getLogger(__name__)

# we always use a path relative to the file as the calling process can come
# from multiple locations
root_dir = Path(__file__).parent


class SampleApiConfiguration(HostConfiguration):
    model_config = SettingsConfigDict(json_file=root_dir / "appsettings.json")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.telemetry.shutdown()


def create_app(configuration: Optional[HostConfiguration] = None) -> FastAPI:
    telemetry_options, documentation_options = load_options(
        configuration or SampleApiConfiguration()
    )

    # The shared documentation setup serves the document and UI itself.
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None, lifespan=lifespan)
    configure_common_elements(app, telemetry_options, documentation_options)

    app.include_router(orders_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "version": telemetry_options.service_version}

    use_standardized_swagger(app, documentation_options)

    _LOGGER.info("🚀 %s ready.", documentation_options.title)
    return app


def main() -> None:
    uvicorn.run(
        "sample_api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8080,
        log_config=get_logging_config(),
    )


if __name__ == "__main__":
    main()
