"""
Filesystem ("native") configuration backend.

Serves YAML files from one or more search locations. For each resolved
directory the candidate files are read general to specific:

    application.yml
    {application}.yml
    application-{profile}.yml      (for each profile, in request order)
    {application}-{profile}.yml

Each file that exists becomes one PropertySource; nested YAML is flattened to
dot-delimited keys so every source is a flat str -> str mapping.
"""

import logging
import os
from typing import Any, Optional

import yaml

from switchboard_config.environment import Environment, Locations, PropertySource
from switchboard_config.repository import (
    EnvironmentRepository,
    InvalidRepositoryFileError,
    NoSuchLabelError,
    NoSuchRepositoryError,
    SearchPathLocator,
)

logger = logging.getLogger(__name__)


def flatten(data: dict[str, Any], parent_key: str = "") -> dict[str, str]:
    """
    Flatten a nested YAML document into dot-delimited string properties.

    Examples:
        {"db": {"host": "x", "port": 5432}} -> {"db.host": "x", "db.port": "5432"}
        {"hosts": ["a", "b"]}               -> {"hosts[0]": "a", "hosts[1]": "b"}
    """
    items: dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{parent_key}.{key}" if parent_key else str(key)
        items.update(_flatten_value(full_key, value))
    return items


def _flatten_value(key: str, value: Any) -> dict[str, str]:
    if isinstance(value, dict):
        if not value:
            return {key: ""}
        return flatten(value, key)
    if isinstance(value, list):
        if not value:
            return {key: ""}
        items: dict[str, str] = {}
        for index, element in enumerate(value):
            items.update(_flatten_value(f"{key}[{index}]", element))
        return items
    return {key: _to_property_value(value)}


def _to_property_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class NativeEnvironmentRepository(EnvironmentRepository, SearchPathLocator):
    """
    Serves configuration from YAML files on the local filesystem.

    A label maps to a subdirectory of a search location. The default label also
    matches the search location itself, so a flat directory of YAML files works
    without any label directories.
    """

    DEFAULT_PROFILE = "default"
    DEFAULT_LABEL = "main"
    _EXTENSIONS = (".yml", ".yaml")

    def __init__(self, search_locations: list[str], default_label: str = DEFAULT_LABEL):
        """
        Initialize the repository.

        Args:
            search_locations: Directories to search, in order (later directories win)
            default_label: Label used when a request does not name one

        Raises:
            NoSuchRepositoryError: If no search location is configured
        """
        if not search_locations:
            raise NoSuchRepositoryError("NativeEnvironmentRepository requires at least one search location")
        self.search_locations = list(search_locations)
        self.default_label = default_label

    def find_one(
        self,
        application: str,
        profile: Optional[str],
        label: Optional[str],
        include_origin: bool = False,
    ) -> Environment:
        self._validate_application(application)
        profiles = self._parse_profiles(profile)
        effective_label = label or self.default_label

        environment = Environment(
            name=application,
            profiles=profiles,
            label=effective_label,
        )

        for directory in self._resolve_directories(effective_label):
            for path in self._candidate_files(directory, application, profiles):
                environment.add(self._load_source(path, include_origin))

        logger.debug(
            "Resolved %d property sources | application=%s | profiles=%s | label=%s",
            len(environment.property_sources),
            application,
            profiles,
            effective_label,
        )
        return environment

    def get_locations(
        self, application: str, profile: Optional[str], label: Optional[str]
    ) -> Locations:
        effective_label = label or self.default_label
        return Locations(
            application=application,
            profile=profile,
            label=effective_label,
            locations=self._resolve_directories(effective_label),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate_application(self, application: str) -> None:
        if not application or not application.strip():
            raise ValueError("application must be a non-empty name")
        if "/" in application or "\\" in application or ".." in application:
            raise ValueError(f"Invalid application name: {application!r}")

    def _parse_profiles(self, profile: Optional[str]) -> list[str]:
        profiles = [p.strip() for p in (profile or "").split(",") if p.strip()]
        return profiles or [self.DEFAULT_PROFILE]

    def _resolve_directories(self, label: str) -> list[str]:
        """
        Map a label to concrete directories across all search locations.

        Raises:
            NoSuchLabelError: If the label matches no directory and is not the default
        """
        if ".." in label.split("/"):
            raise NoSuchLabelError(label)

        directories: list[str] = []
        for location in self.search_locations:
            labelled = os.path.join(location, label)
            if os.path.isdir(labelled):
                directories.append(labelled)
            elif label == self.default_label and os.path.isdir(location):
                directories.append(location)

        if not directories and label != self.default_label:
            raise NoSuchLabelError(label)
        return directories

    def _candidate_files(self, directory: str, application: str, profiles: list[str]) -> list[str]:
        names = ["application", application]
        for profile in profiles:
            names.append(f"application-{profile}")
            names.append(f"{application}-{profile}")

        paths: list[str] = []
        seen: set[str] = set()
        for name in names:
            if name in seen:
                continue  # application == "application"
            seen.add(name)
            path = self._find_file(directory, name)
            if path is not None:
                paths.append(path)
        return paths

    def _find_file(self, directory: str, name: str) -> Optional[str]:
        for extension in self._EXTENSIONS:
            path = os.path.join(directory, name + extension)
            if os.path.isfile(path):
                return path
        return None

    def _load_source(self, path: str, include_origin: bool) -> PropertySource:
        """
        Parse one YAML file into a PropertySource.

        Raises:
            InvalidRepositoryFileError: If the file is not valid YAML or not a mapping
        """
        with open(path, encoding="utf-8") as f:
            try:
                document = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise InvalidRepositoryFileError(path, f"invalid YAML: {exc}") from exc

        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise InvalidRepositoryFileError(path, f"expected a mapping, got {type(document).__name__}")

        properties = flatten(document)
        origins = {key: path for key in properties} if include_origin else {}
        return PropertySource(name=f"file:{path}", source=properties, origins=origins)
