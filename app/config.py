"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    field_validator,
)
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_DISPLAY_NETWORKS: tuple[str, ...] = (
    "HBO",
    "Netflix",
    "Disney",
    "Amazon",
    "Apple TV+",
    "Hulu",
    "Paramount+",
)
DEFAULT_DISPLAY_STUDIOS: tuple[str, ...] = (
    "Warner Bros.",
    "Universal Pictures",
    "Sony Pictures",
    "Paramount Pictures",
)


def parse_display_names(
    value: object, *, fallback: tuple[str, ...]
) -> tuple[str, ...]:
    """Normalise a configured list of entity names, keeping their order."""

    if value is None:
        return fallback
    if isinstance(value, str):
        raw_values = [part.strip() for part in value.split(",")]
    elif isinstance(value, Iterable):
        raw_values = [str(part).strip() for part in value]
    else:
        raise TypeError("Display names must be a string or iterable of strings")

    cleaned: list[str] = []
    for entry in raw_values:
        if entry and entry not in cleaned:
            cleaned.append(entry)
    if not cleaned:
        return fallback
    return tuple(cleaned)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Seerbrowse", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=5056, alias="PORT")

    service_url: HttpUrl = Field(alias="SERVICE_URL")
    api_key: SecretStr = Field(alias="API_KEY")
    refresh_interval_hours: int = Field(
        default=12, alias="REFRESH_INTERVAL_HOURS", ge=1
    )
    display_networks: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_DISPLAY_NETWORKS, alias="DISPLAY_NETWORKS"
    )
    display_studios: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_DISPLAY_STUDIOS, alias="DISPLAY_STUDIOS"
    )
    notification_limit: int = Field(
        default=50, alias="NOTIFICATION_LIMIT", ge=1, le=1_000
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("api_key")
    @classmethod
    def _require_api_key(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("API_KEY must not be blank")
        return value

    @field_validator("display_networks", mode="before")
    @classmethod
    def _parse_display_networks(cls, value: object) -> tuple[str, ...]:
        return parse_display_names(value, fallback=DEFAULT_DISPLAY_NETWORKS)

    @field_validator("display_studios", mode="before")
    @classmethod
    def _parse_display_studios(cls, value: object) -> tuple[str, ...]:
        return parse_display_names(value, fallback=DEFAULT_DISPLAY_STUDIOS)

    @property
    def refresh_interval_seconds(self) -> int:
        """Return the refresh period expressed in seconds."""

        return self.refresh_interval_hours * 3_600

    @property
    def api_base_url(self) -> str:
        """Return the versioned API root of the request service."""

        return f"{str(self.service_url).rstrip('/')}/api/v1"

    def requires_refresh(self, other: "Settings") -> bool:
        """Return ``True`` when switching to ``other`` must trigger a refresh."""

        return (
            str(self.service_url) != str(other.service_url)
            or self.api_key.get_secret_value() != other.api_key.get_secret_value()
            or self.refresh_interval_hours != other.refresh_interval_hours
        )

    def to_public_payload(self) -> dict[str, object]:
        """Return the configuration surface with the credential masked."""

        return {
            "serviceUrl": str(self.service_url),
            "apiKey": "********" if self.api_key.get_secret_value() else "",
            "refreshIntervalHours": self.refresh_interval_hours,
            "displayNetworks": list(self.display_networks),
            "displayStudios": list(self.display_studios),
        }

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )


class ConfigUpdate(BaseModel):
    """Configuration saved from the host UI's settings form."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    service_url: HttpUrl | None = Field(
        default=None,
        validation_alias=AliasChoices("serviceUrl", "jellyseerrUrl", "service_url"),
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("apiKey", "jellyseerrApiKey", "api_key"),
    )
    refresh_interval_hours: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices(
            "refreshIntervalHours", "refreshInterval", "refresh_interval_hours"
        ),
    )
    display_networks: tuple[str, ...] | None = Field(
        default=None,
        validation_alias=AliasChoices("displayNetworks", "display_networks"),
    )
    display_studios: tuple[str, ...] | None = Field(
        default=None,
        validation_alias=AliasChoices("displayStudios", "display_studios"),
    )

    @field_validator("api_key")
    @classmethod
    def _reject_blank_key(cls, value: SecretStr | None) -> SecretStr | None:
        if value is not None and not value.get_secret_value().strip():
            raise ValueError("apiKey must not be blank")
        return value

    @field_validator("display_networks", mode="before")
    @classmethod
    def _parse_networks(cls, value: object) -> object:
        if value is None:
            return None
        return parse_display_names(value, fallback=DEFAULT_DISPLAY_NETWORKS)

    @field_validator("display_studios", mode="before")
    @classmethod
    def _parse_studios(cls, value: object) -> object:
        if value is None:
            return None
        return parse_display_names(value, fallback=DEFAULT_DISPLAY_STUDIOS)

    def apply(self, settings: Settings) -> Settings:
        """Return a validated copy of ``settings`` with this update applied."""

        data = settings.model_dump(by_alias=True)
        for name, value in self.model_dump(exclude_none=True).items():
            data[Settings.model_fields[name].alias or name] = value
        return Settings(_env_file=None, **data)  # type: ignore[arg-type]


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]
