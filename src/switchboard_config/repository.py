"""
Repository abstractions for configuration backends.

Every backend (filesystem, composite, decorators around either) implements
EnvironmentRepository. A backend that can also report which storage
locations it searches implements the optional SearchPathLocator interface;
callers detect it with isinstance() and fall back to an empty result.
"""

from abc import ABC, abstractmethod
from typing import Optional

from switchboard_config.environment import Environment, Locations


class NoSuchLabelError(LookupError):
    """Raised when a requested label does not exist in the backend."""

    def __init__(self, label: str):
        super().__init__(f"No such label: {label}")
        self.label = label


class NoSuchRepositoryError(LookupError):
    """Raised when a backend has no storage configured for the request."""


class InvalidRepositoryFileError(Exception):
    """Raised when a file in the server's own repository cannot be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid configuration file {path}: {reason}")
        self.path = path


class EnvironmentRepository(ABC):
    """
    Abstract base class for configuration backends.

    Subclasses resolve (application, profile, label) to an Environment.
    """

    @abstractmethod
    def find_one(
        self,
        application: str,
        profile: Optional[str],
        label: Optional[str],
        include_origin: bool = False,
    ) -> Environment:
        """
        Resolve configuration for one application.

        Args:
            application: Application name (e.g., "billing")
            profile: Comma-separated profile list; None lets the backend default it
            label: Version label (branch, tag, directory); None lets the backend default it
            include_origin: Record per-key provenance in the returned sources

        Returns:
            Environment with property sources ordered lowest precedence first

        Raises:
            NoSuchLabelError: If the label does not exist
            ValueError: If the request is malformed
            InvalidRepositoryFileError: If a stored file cannot be parsed
        """
        pass


class SearchPathLocator(ABC):
    """Optional capability: list the storage locations searched for a request."""

    @abstractmethod
    def get_locations(
        self, application: str, profile: Optional[str], label: Optional[str]
    ) -> Locations:
        pass
