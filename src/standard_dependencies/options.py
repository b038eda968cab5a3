"""
Option records bound from the shared configuration sections.

`TelemetryOptions` and `DocumentationOptions` are the plain, immutable
records handed to the telemetry and documentation configurators. Field
aliases are the configuration keys of the `OpenTelemetry` and `Swagger`
sections; keys bind case-insensitively, and any key left out falls back to
the documented default.
"""

import json
from enum import Enum
from typing import Any, ClassVar, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Exporter(str, Enum):
    """Telemetry sinks that can be attached to the signal pipelines."""

    OTLP = "OTLP"
    CONSOLE = "Console"

    @classmethod
    def parse(cls, value: Any) -> Any:
        """Resolve an exporter name case-insensitively.

        Unknown names are returned untouched so that validation reports them.
        """
        if isinstance(value, cls) or not isinstance(value, str):
            return value
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        return value.strip()


class ConfigSection(BaseModel):
    """Base for records bound from a named configuration section."""

    section_name: ClassVar[str]

    # Values read from env vars may arrive JSON-decoded (e.g. a version of 1)
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def bind_keys_case_insensitively(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data

        keys: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            keys[name.lower()] = name
            if field.alias:
                keys[field.alias.lower()] = field.alias

        return {keys.get(str(key).lower(), key): value for key, value in data.items()}


class TelemetryOptions(ConfigSection):
    """Values of the `OpenTelemetry` configuration section."""

    section_name: ClassVar[str] = "OpenTelemetry"

    service_name: str = Field(default="", alias="ServiceName")
    service_version: str = Field(default="", alias="ServiceVersion")
    collector_url: str = Field(default="http://localhost:4317", alias="Url")
    exporters: frozenset[Exporter] = Field(
        default_factory=lambda: frozenset({Exporter.OTLP}), alias="Exporters"
    )
    log_level: str = Field(default="INFO", alias="LogLevel")

    @field_validator("exporters", mode="before")
    @classmethod
    def parse_exporters(cls, v):
        """Accept lists, JSON lists, comma separated names and index-keyed maps.

        Environment variables arrive as strings (``OTLP,Console``) or, when
        written as ``OPENTELEMETRY__EXPORTERS__0``, as ``{"0": "OTLP"}``.
        """
        if isinstance(v, str):
            stripped = v.strip()
            if stripped.startswith("["):
                v = json.loads(stripped)
            else:
                v = [item for item in stripped.split(",") if item.strip()]

        if isinstance(v, Mapping):
            v = [v[key] for key in sorted(v, key=lambda key: (len(str(key)), str(key)))]

        if isinstance(v, (list, tuple, set, frozenset)):
            return [Exporter.parse(item) for item in v]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class DocumentationOptions(ConfigSection):
    """Values of the `Swagger` configuration section."""

    section_name: ClassVar[str] = "Swagger"

    version: str = Field(default="v1", alias="Version")
    title: str = Field(default="API", alias="Title")
    description: str = Field(default="API Documentation", alias="Description")
    contact_name: str = Field(default="API Support", alias="ContactName")
    contact_url: str = Field(default="http://example.com/support", alias="ContactUrl")
