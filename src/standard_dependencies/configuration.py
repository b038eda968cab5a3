"""
Hierarchical configuration source for hosts using the shared startup.

`HostConfiguration` layers environment variables over a JSON settings file,
the same way the services configure themselves from env vars with
pydantic settings. Sections are addressed by name through `get_section`.
"""

from typing import Any, Mapping, Optional

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

DEFAULT_SETTINGS_FILE = "appsettings.json"


class HostConfiguration(BaseSettings):
    """
    Configuration sections read at process startup.

    Order of preference for config:
    1. Values passed to the constructor
    2. Environment variables, ``__`` separating section and key
       (e.g., OPENTELEMETRY__SERVICENAME)
    3. The JSON settings file (``appsettings.json`` unless a subclass
       points ``json_file`` elsewhere)
    """

    open_telemetry: Optional[dict[str, Any]] = Field(
        default=None,
        validation_alias="OpenTelemetry",
    )
    swagger: Optional[dict[str, Any]] = Field(
        default=None,
        validation_alias="Swagger",
    )

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
        json_file=DEFAULT_SETTINGS_FILE,
        json_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls),
        )

    def get_section(self, name: str) -> Optional[Mapping[str, Any]]:
        """Return the named section, or None if it is absent or empty.

        :param name: Section name, matched case-insensitively.
        :type name: str
        :return: The section's key/value mapping.
        :rtype: Mapping[str, Any] | None
        """
        for field_name, field in type(self).model_fields.items():
            names = {field_name.lower(), str(field.validation_alias).lower()}
            if name.lower() in names:
                return getattr(self, field_name) or None
        return None
