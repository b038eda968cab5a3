from standard_dependencies.bootstrap import (
    configure_common_elements,
    use_standardized_swagger,
)
from standard_dependencies.configuration import HostConfiguration
from standard_dependencies.documentation import (
    DocumentedRoute,
    configure_documentation,
    use_documentation,
)
from standard_dependencies.errors import (
    ConfigurationError,
    InvalidConfiguration,
    InvalidContactUrl,
    InvalidTelemetryConfig,
    MissingConfiguration,
)
from standard_dependencies.log_context import log_context
from standard_dependencies.logging_config import JsonFormatter, get_logging_config
from standard_dependencies.options import (
    DocumentationOptions,
    Exporter,
    TelemetryOptions,
)
from standard_dependencies.options_loader import (
    load_documentation_options,
    load_options,
    load_telemetry_options,
)
from standard_dependencies.telemetry import Telemetry, configure_telemetry

__all__ = [
    "ConfigurationError",
    "DocumentationOptions",
    "DocumentedRoute",
    "Exporter",
    "HostConfiguration",
    "InvalidConfiguration",
    "InvalidContactUrl",
    "InvalidTelemetryConfig",
    "JsonFormatter",
    "MissingConfiguration",
    "Telemetry",
    "TelemetryOptions",
    "configure_common_elements",
    "configure_documentation",
    "configure_telemetry",
    "get_logging_config",
    "load_documentation_options",
    "load_options",
    "load_telemetry_options",
    "log_context",
    "use_documentation",
    "use_standardized_swagger",
]
