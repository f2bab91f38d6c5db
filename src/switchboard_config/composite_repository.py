"""
Composite backend: several repositories merged into one Environment.

Members are queried in configured order and their sources concatenated, so a
later member overrides an earlier one on colliding keys.
"""

import logging
from typing import Optional

from switchboard_config.environment import Environment, Locations
from switchboard_config.repository import EnvironmentRepository, SearchPathLocator

logger = logging.getLogger(__name__)


class CompositeEnvironmentRepository(EnvironmentRepository, SearchPathLocator):
    """Ordered composite of EnvironmentRepository members."""

    def __init__(self, repositories: list[EnvironmentRepository]):
        if not repositories:
            raise ValueError("CompositeEnvironmentRepository requires at least one repository")
        self.repositories = list(repositories)

    def find_one(
        self,
        application: str,
        profile: Optional[str],
        label: Optional[str],
        include_origin: bool = False,
    ) -> Environment:
        composite: Optional[Environment] = None

        for repository in self.repositories:
            environment = repository.find_one(application, profile, label, include_origin)
            if composite is None:
                composite = Environment(
                    name=environment.name,
                    profiles=list(environment.profiles),
                    label=environment.label,
                    version=environment.version,
                    state=environment.state,
                )
            elif composite.version is None:
                composite.version = environment.version
            composite.add_all(environment.property_sources)

        logger.debug(
            "Composite resolved %d property sources from %d repositories | application=%s",
            len(composite.property_sources),
            len(self.repositories),
            application,
        )
        return composite

    def get_locations(
        self, application: str, profile: Optional[str], label: Optional[str]
    ) -> Locations:
        result = Locations.empty(application, profile, label)
        for repository in self.repositories:
            if not isinstance(repository, SearchPathLocator):
                continue
            locations = repository.get_locations(application, profile, label)
            result.locations.extend(locations.locations)
            if result.version is None:
                result.version = locations.version
        return result
