"""
Server configuration loading from YAML and environment variables.

Reads:
1. config/server.yaml: listen address, native search locations, parameter store
2. Environment variables: runtime overrides (credentials, region, prefix, port)

Configuration hierarchy (highest to lowest priority):
1. Environment variables
2. config/server.yaml
3. Built-in defaults
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def parse_bool(value: Any) -> bool:
    """Interpret a YAML or environment value as a flag ("false" is False)."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def parse_locations(value: Any) -> list[str]:
    """
    Normalize search_locations to a list of directories.

    A single string is one directory, not a sequence of characters.

    Raises:
        ValueError: If value is neither a string nor a list
    """
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(location) for location in value]
    raise ValueError(f"native.search_locations must be a string or a list, got {type(value).__name__}")


@dataclass
class NativeSettings:
    search_locations: list[str] = field(default_factory=lambda: ["config-repo"])
    default_label: str = "main"


@dataclass
class ParameterStoreSettings:
    """SSM Parameter Store enrichment settings."""

    enabled: bool = True
    prefix: str = "/switchboard"
    region: str = "us-west-2"
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    page_size: int = 10  # GetParametersByPath hard limit
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_attempts: int = 3


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8888
    log_level: str = "INFO"
    native: NativeSettings = field(default_factory=NativeSettings)
    parameter_store: ParameterStoreSettings = field(default_factory=ParameterStoreSettings)


class ConfigLoader:
    """
    Loads and merges server settings from the YAML file and the environment.

    Usage (main.py):
        settings = ConfigLoader().load()
    """

    DEFAULT_CONFIG_PATH = "config/server.yaml"

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, environ: Optional[dict[str, str]] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Path to server.yaml (relative to the working directory)
            environ: Environment mapping to read overrides from (defaults to os.environ)
        """
        self.config_path = config_path
        self._environ = os.environ if environ is None else environ

    def load(self) -> ServerSettings:
        """
        Load settings from all sources.

        A missing file is not an error; defaults apply.

        Returns:
            Merged ServerSettings

        Raises:
            ValueError: If the file is malformed or a value is out of range
        """
        raw = self.load_file()
        settings = self._from_mapping(raw)
        self._apply_environment(settings)
        self._validate(settings)
        return settings

    def load_file(self) -> dict[str, Any]:
        """
        Load and parse server.yaml.

        Returns:
            Parsed config dict, or {} if the file does not exist
        """
        if not os.path.isfile(self.config_path):
            logger.warning("Config file %s not found, using defaults", self.config_path)
            return {}

        with open(self.config_path, encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in {self.config_path}: {exc}") from exc

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ValueError(f"{self.config_path} must contain a mapping at the top level")
        return config

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _from_mapping(self, raw: dict[str, Any]) -> ServerSettings:
        server = raw.get("server") or {}
        native = raw.get("native") or {}
        store = raw.get("parameter_store") or {}
        aws = raw.get("aws") or {}
        log_config = raw.get("logging") or {}

        defaults = ServerSettings()
        store_defaults = defaults.parameter_store

        return ServerSettings(
            host=str(server.get("host", defaults.host)),
            port=int(server.get("port", defaults.port)),
            log_level=str(log_config.get("level", defaults.log_level)).upper(),
            native=NativeSettings(
                search_locations=parse_locations(native.get("search_locations", defaults.native.search_locations)),
                default_label=str(native.get("default_label", defaults.native.default_label)),
            ),
            parameter_store=ParameterStoreSettings(
                enabled=parse_bool(store.get("enabled", store_defaults.enabled)),
                prefix=str(store.get("prefix", store_defaults.prefix)),
                region=str(aws.get("region", store_defaults.region)),
                access_key=aws.get("access_key"),
                secret_key=aws.get("secret_key"),
                endpoint_url=aws.get("endpoint_url"),
                page_size=int(store.get("page_size", store_defaults.page_size)),
                connect_timeout=float(store.get("connect_timeout", store_defaults.connect_timeout)),
                read_timeout=float(store.get("read_timeout", store_defaults.read_timeout)),
                max_attempts=int(store.get("max_attempts", store_defaults.max_attempts)),
            ),
        )

    def _apply_environment(self, settings: ServerSettings) -> None:
        env = self._environ
        store = settings.parameter_store

        if env.get("CONFIG_SERVER_HOST"):
            settings.host = env["CONFIG_SERVER_HOST"]
        if env.get("CONFIG_SERVER_PORT"):
            settings.port = int(env["CONFIG_SERVER_PORT"])
        if env.get("LOG_LEVEL"):
            settings.log_level = env["LOG_LEVEL"].upper()

        locations = [s.strip() for s in env.get("CONFIG_SEARCH_LOCATIONS", "").split(",") if s.strip()]
        if locations:
            settings.native.search_locations = locations
        if env.get("CONFIG_DEFAULT_LABEL"):
            settings.native.default_label = env["CONFIG_DEFAULT_LABEL"]

        if env.get("PARAMETER_STORE_ENABLED"):
            store.enabled = parse_bool(env["PARAMETER_STORE_ENABLED"])
        if env.get("PARAMETER_STORE_PREFIX"):
            store.prefix = env["PARAMETER_STORE_PREFIX"]
        if env.get("AWS_REGION"):
            store.region = env["AWS_REGION"]
        if env.get("AWS_ACCESS_KEY_ID"):
            store.access_key = env["AWS_ACCESS_KEY_ID"]
        if env.get("AWS_SECRET_ACCESS_KEY"):
            store.secret_key = env["AWS_SECRET_ACCESS_KEY"]
        if env.get("AWS_ENDPOINT_URL"):
            store.endpoint_url = env["AWS_ENDPOINT_URL"]

    def _validate(self, settings: ServerSettings) -> None:
        store = settings.parameter_store
        if not 1 <= store.page_size <= 10:
            raise ValueError(f"parameter_store.page_size must be between 1 and 10, got {store.page_size}")
        if not store.prefix.startswith("/"):
            raise ValueError(f"parameter_store.prefix must start with '/', got {store.prefix!r}")
        if not settings.native.search_locations:
            raise ValueError("native.search_locations must list at least one directory")
