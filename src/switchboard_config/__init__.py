"""
Switchboard config server.

Serves versioned application configuration over HTTP, enriched with values
from the AWS SSM Parameter Store:
- EnvironmentRepository: Standardizes configuration backends (native YAML, composite)
- SearchPathLocator: Optional capability to report searched storage locations
- ParameterStoreClient: Paginated, decrypted fetch of a parameter hierarchy
- ParameterStoreEnvironmentRepository: Appends Parameter Store values to any repository
- ConfigLoader: Reads server settings from YAML + environment variables

Every response is an Environment: an ordered list of PropertySources where
later sources override earlier ones.
"""

__version__ = "0.1.0"

from switchboard_config.composite_repository import CompositeEnvironmentRepository  # noqa: E402
from switchboard_config.config_loader import ConfigLoader, ServerSettings  # noqa: E402
from switchboard_config.enriched_repository import (  # noqa: E402
    ParameterStoreEnvironmentRepository,
    extract_key_from_path,
)
from switchboard_config.environment import Environment, Locations, PropertySource  # noqa: E402
from switchboard_config.native_repository import NativeEnvironmentRepository  # noqa: E402
from switchboard_config.parameter_store import ParameterStoreClient  # noqa: E402
from switchboard_config.repository import (  # noqa: E402
    EnvironmentRepository,
    InvalidRepositoryFileError,
    NoSuchLabelError,
    NoSuchRepositoryError,
    SearchPathLocator,
)

__all__ = [
    "CompositeEnvironmentRepository",
    "ConfigLoader",
    "Environment",
    "EnvironmentRepository",
    "InvalidRepositoryFileError",
    "Locations",
    "NativeEnvironmentRepository",
    "NoSuchLabelError",
    "NoSuchRepositoryError",
    "ParameterStoreClient",
    "ParameterStoreEnvironmentRepository",
    "PropertySource",
    "SearchPathLocator",
    "ServerSettings",
    "extract_key_from_path",
    "__version__",
]
