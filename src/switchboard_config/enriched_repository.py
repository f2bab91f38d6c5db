"""
Parameter Store enrichment for any EnvironmentRepository.

ParameterStoreEnvironmentRepository wraps an existing repository (native,
composite, ...) and, after the wrapped repository has answered:
1. Builds the parameter path {prefix}/{application}
2. Fetches every parameter below it (recursive, decrypted)
3. Converts parameter names to dot-delimited property keys
4. Appends them as one PropertySource at the end of the Environment,
   where they take precedence over every base source

Base repository failures propagate. Parameter Store failures are logged and
the base Environment is returned unchanged.
"""

import logging
from typing import Optional

from switchboard_config.environment import Environment, Locations, PropertySource
from switchboard_config.parameter_store import ParameterStoreClient
from switchboard_config.repository import EnvironmentRepository, SearchPathLocator

logger = logging.getLogger(__name__)

SOURCE_NAME_PREFIX = "aws-parameter-store:"
DEFAULT_PREFIX = "/switchboard"


def extract_key_from_path(full_path: str, base_path: str) -> str:
    """
    Convert a parameter name to a property key relative to base_path.

    Examples:
        ("/switchboard/billing/db/host", "/switchboard/billing") -> "db.host"
        ("/switchboard/billing/timeout", "/switchboard/billing") -> "timeout"

    Args:
        full_path: Full parameter name returned by Parameter Store
        base_path: Path the fetch was scoped to

    Returns:
        Dot-delimited property key
    """
    key = full_path[len(base_path):] if full_path.startswith(base_path) else full_path
    return key.lstrip("/").replace("/", ".")


class ParameterStoreEnvironmentRepository(EnvironmentRepository, SearchPathLocator):
    """
    Decorator that enriches another repository with Parameter Store values.

    Usage (main.py):
        base = CompositeEnvironmentRepository([native])
        repository = ParameterStoreEnvironmentRepository(base, client, prefix="/switchboard")
    """

    def __init__(
        self,
        delegate: EnvironmentRepository,
        client: ParameterStoreClient,
        prefix: str = DEFAULT_PREFIX,
    ):
        """
        Args:
            delegate: Repository that supplies the base configuration
            client: Shared Parameter Store client, built once at startup
            prefix: Root of the parameter hierarchy (e.g. "/switchboard")

        Raises:
            ValueError: If delegate is already a ParameterStoreEnvironmentRepository
        """
        if isinstance(delegate, ParameterStoreEnvironmentRepository):
            raise ValueError("Repository is already enriched with Parameter Store values")
        self.delegate = delegate
        self.client = client
        self.prefix = prefix.rstrip("/")
        self._locator: Optional[SearchPathLocator] = (
            delegate if isinstance(delegate, SearchPathLocator) else None
        )

    def find_one(
        self,
        application: str,
        profile: Optional[str],
        label: Optional[str],
        include_origin: bool = False,
    ) -> Environment:
        environment = self.delegate.find_one(application, profile, label, include_origin)
        self._enrich(environment, application)
        return environment

    def get_locations(
        self, application: str, profile: Optional[str], label: Optional[str]
    ) -> Locations:
        if self._locator is not None:
            return self._locator.get_locations(application, profile, label)
        return Locations.empty(application, profile, label)

    def parameter_path(self, application: str) -> str:
        return f"{self.prefix}/{application}"

    def _enrich(self, environment: Environment, application: str) -> None:
        """
        Append Parameter Store values to environment, best effort.

        Any fetch failure is non-fatal: the environment is left untouched.
        """
        path = self.parameter_path(application)
        try:
            parameters = self.client.fetch_all(path)
        except Exception as exc:
            logger.warning(
                "Parameter Store fetch failed (non-fatal) | application=%s | path=%s | error=%s",
                application,
                path,
                exc,
            )
            return

        properties = {
            extract_key_from_path(name, path): value for name, value in parameters.items()
        }
        if not properties:
            logger.info("No Parameter Store values found | path=%s", path)
            return

        environment.add(PropertySource(name=f"{SOURCE_NAME_PREFIX}{path}", source=properties))
        logger.info(
            "Added %d Parameter Store values | application=%s | path=%s",
            len(properties),
            application,
            path,
        )
        logger.debug("Parameter Store keys for %s: %s", application, sorted(properties))
