from __future__ import annotations

from typing import Optional


class MeringueError(Exception):
    """
    Single structured failure raised by every stage of a campaign.
    Carries a human-readable message and the underlying cause (if any).
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"


class ConfigurationError(MeringueError):
    """Bad executable path, malformed duration or missing identifiers."""


class DurationParseError(ConfigurationError):
    pass


class StagingError(MeringueError):
    """I/O failure while creating directories, the manifest JAR or report files."""


class DependencyResolutionError(MeringueError):
    """The build system could not resolve the test class path."""


class FrameworkInstantiationError(MeringueError):
    pass


class CampaignRunError(MeringueError):
    """The framework failed while the campaign was running."""
