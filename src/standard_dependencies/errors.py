"""Startup errors raised while binding and applying shared configuration.

None of these are recovered from: they propagate to the host's entry point
and abort initialisation.
"""


class ConfigurationError(ValueError):
    """Base class for configuration problems found at startup."""


class MissingConfiguration(ConfigurationError):
    """A required configuration section (or option record) is absent."""

    def __init__(self, section: str) -> None:
        self.section = section
        super().__init__(f"Missing configuration section: {section}")


class InvalidConfiguration(ConfigurationError):
    """A configuration section is present but one of its values is invalid."""

    def __init__(self, section: str, detail: str) -> None:
        self.section = section
        self.detail = detail
        super().__init__(f"Invalid configuration in section {section}: {detail}")


class InvalidTelemetryConfig(InvalidConfiguration):
    def __init__(self, detail: str) -> None:
        super().__init__("OpenTelemetry", detail)


class InvalidContactUrl(InvalidConfiguration):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__("Swagger", f"ContactUrl is not a valid URL: {url!r}")
