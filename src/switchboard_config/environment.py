"""
Environment data model served by the config server.

An Environment is the full configuration result for one
(application, profile, label) request:
- name / profiles / label: request identity, preserved by every decorator
- property_sources: ordered list of PropertySource, lowest precedence first
- version / state: optional backend provenance (e.g. a commit SHA)

Precedence is positional: when two sources define the same key, the source
later in the list wins.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class PropertySource:
    """
    A named flat key/value mapping contributing to an Environment.

    The name is for provenance only (e.g. "file:config-repo/billing.yml"),
    never used for lookup.
    """

    name: str
    source: dict[str, str]
    origins: dict[str, str] = field(default_factory=dict)  # key -> origin, only when requested

    def to_dict(self, include_origin: bool = False) -> dict[str, Any]:
        """
        Convert to the JSON response shape.

        With include_origin, keys that carry an origin render as
        {"value": ..., "origin": ...}; keys without one stay plain.
        """
        if not include_origin or not self.origins:
            return {"name": self.name, "source": dict(self.source)}

        source: dict[str, Any] = {}
        for key, value in self.source.items():
            origin = self.origins.get(key)
            source[key] = {"value": value, "origin": origin} if origin else value
        return {"name": self.name, "source": source}


@dataclass
class Environment:
    """Ordered set of property sources for one (application, profile, label)."""

    name: str
    profiles: list[str]
    label: Optional[str] = None
    version: Optional[str] = None
    state: Optional[str] = None
    property_sources: list[PropertySource] = field(default_factory=list)

    def add(self, property_source: PropertySource) -> None:
        """Append a source as the new highest-precedence entry."""
        self.property_sources.append(property_source)

    def add_all(self, property_sources: list[PropertySource]) -> None:
        self.property_sources.extend(property_sources)

    def merged(self) -> dict[str, str]:
        """
        Flatten all sources into one mapping.

        Sources are applied in order so later sources overwrite earlier ones.
        """
        result: dict[str, str] = {}
        for property_source in self.property_sources:
            result.update(property_source.source)
        return result

    def to_dict(self, include_origin: bool = False) -> dict[str, Any]:
        """Convert to the JSON response shape (propertySources in stored order)."""
        return {
            "name": self.name,
            "profiles": list(self.profiles),
            "label": self.label,
            "version": self.version,
            "state": self.state,
            "propertySources": [
                ps.to_dict(include_origin=include_origin) for ps in self.property_sources
            ],
        }


@dataclass
class Locations:
    """Storage locations a repository would search for one request."""

    application: str
    profile: Optional[str]
    label: Optional[str]
    version: Optional[str] = None
    locations: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls, application: str, profile: Optional[str], label: Optional[str]) -> "Locations":
        return cls(application=application, profile=profile, label=label)
