"""
Binds the `OpenTelemetry` and `Swagger` configuration sections.

A section either binds in full (omitted keys take their defaults) or is
absent, in which case loading fails with `MissingConfiguration`.
"""

import logging
from typing import Any, Mapping, Optional, Protocol, TypeVar, Union

from pydantic import ValidationError

from standard_dependencies.errors import InvalidConfiguration, MissingConfiguration
from standard_dependencies.options import (
    ConfigSection,
    DocumentationOptions,
    TelemetryOptions,
)

_LOGGER = logging.getLogger(__name__)

SectionT = TypeVar("SectionT", bound=ConfigSection)


class SectionSource(Protocol):
    def get_section(self, name: str) -> Optional[Mapping[str, Any]]: ...


ConfigurationSource = Union[SectionSource, Mapping[str, Any]]


def get_section(
    configuration: ConfigurationSource, name: str
) -> Optional[Mapping[str, Any]]:
    """Look up a section by name, ignoring case. Empty sections count as absent."""
    if isinstance(configuration, Mapping):
        for key, value in configuration.items():
            if str(key).lower() == name.lower():
                return value or None
        return None
    return configuration.get_section(name)


def bind_section(configuration: ConfigurationSource, model: type[SectionT]) -> SectionT:
    """Bind the section named by ``model.section_name`` onto ``model``.

    :param configuration: Source addressable by section name.
    :type configuration: ConfigurationSource
    :param model: Option record type to bind.
    :type model: type[ConfigSection]
    :raises MissingConfiguration: If the section is absent.
    :raises InvalidConfiguration: If a value in the section cannot be bound.
    :return: The bound, immutable option record.
    :rtype: ConfigSection
    """
    section = get_section(configuration, model.section_name)
    if section is None:
        raise MissingConfiguration(model.section_name)

    if not isinstance(section, Mapping):
        raise InvalidConfiguration(
            model.section_name, f"expected a section, got {type(section).__name__}"
        )

    try:
        options = model.model_validate(section)
    except ValidationError as e:
        raise InvalidConfiguration(model.section_name, str(e)) from e

    _LOGGER.debug("🧩 Bound configuration section %s.", model.section_name)
    return options


def load_telemetry_options(configuration: ConfigurationSource) -> TelemetryOptions:
    return bind_section(configuration, TelemetryOptions)


def load_documentation_options(
    configuration: ConfigurationSource,
) -> DocumentationOptions:
    return bind_section(configuration, DocumentationOptions)


def load_options(
    configuration: ConfigurationSource,
) -> tuple[TelemetryOptions, DocumentationOptions]:
    """Read both shared sections once, at startup.

    :param configuration: Source addressable by section name.
    :type configuration: ConfigurationSource
    :raises MissingConfiguration: Naming the first absent section.
    :return: Telemetry and documentation options.
    :rtype: tuple[TelemetryOptions, DocumentationOptions]
    """
    return (
        load_telemetry_options(configuration),
        load_documentation_options(configuration),
    )
