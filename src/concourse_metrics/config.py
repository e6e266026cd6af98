"""Configuration loading for the collector."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from concourse_metrics.domain.exceptions import ConfigurationError
from concourse_metrics.infrastructure.concourse import ConcourseClientConfig
from concourse_metrics.infrastructure.sinks import DatadogSinkConfig

DEFAULT_CACHE_PATH = ".concourse-metrics-cache.json"


class ConcourseSettings(BaseModel):
    """The "concourse" section of the config file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    url: str = Field(min_length=1)
    username: str = ""
    password: str = ""
    team: str = "main"
    target: str = ""  # fly target name, informational only
    token_path: str = Field("/sky/issuer/token", alias="token-path")
    builds_limit: int | None = Field(None, alias="builds-limit", gt=0)

    def to_client_config(self) -> ConcourseClientConfig:
        return ConcourseClientConfig(
            url=self.url,
            team=self.team,
            username=self.username,
            password=self.password,
            token_path=self.token_path,
            builds_limit=self.builds_limit,
        )


class DatadogSettings(BaseModel):
    """The "datadog" section of the config file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    api_key: str = Field(alias="api-key", min_length=1)
    app_key: str = Field("", alias="app-key")
    metric_prefix: str = Field("concourse", alias="metric-prefix")
    site: str = "datadoghq.com"

    def to_sink_config(self) -> DatadogSinkConfig:
        return DatadogSinkConfig(
            api_key=self.api_key,
            app_key=self.app_key,
            metric_prefix=self.metric_prefix,
            site=self.site,
        )


class CollectorConfig(BaseModel):
    """Top-level config file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    concourse: ConcourseSettings
    datadog: DatadogSettings | None = None
    cache_path: str = Field(DEFAULT_CACHE_PATH, alias="cache-path")


def _format_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc']) or '<root>'}: {e['msg']}"
        for e in error.errors()
    )


def load_config(path: Path) -> CollectorConfig:
    """
    Load collector configuration from a JSON file.

    Args:
        path: Path to the config file

    Returns:
        Validated CollectorConfig

    Raises:
        ConfigurationError: If file is missing or invalid
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected dict in {path}, got {type(data).__name__}")

    try:
        return CollectorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid config in {path}: {_format_validation_error(e)}"
        ) from e
