"""
Fuzzing framework contract and the registry that resolves framework names
to live instances.

A framework is constructed with no arguments, initialized exactly once with
the campaign configuration and its own free-form string arguments, then run.
New engines are added by registering a factory (or by publishing an entry
point in the ``meringue.frameworks`` group) without touching the orchestrator.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from importlib.metadata import entry_points
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Sequence

from loguru import logger

from .config import CampaignConfiguration
from .errors import FrameworkInstantiationError
from .java_runner import JavaRunner, RunResult, write_log_path

ENTRY_POINT_GROUP = "meringue.frameworks"

FrameworkFactory = Callable[[], "FuzzFramework"]


class FuzzFramework(ABC):

    def __init__(self):
        self._config: Optional[CampaignConfiguration] = None
        self._arguments: Mapping[str, str] = {}

    def initialize(self, config: CampaignConfiguration, arguments: Mapping[str, str]) -> None:
        if self._config is not None:
            raise RuntimeError(f"{type(self).__name__} was already initialized")
        self._config = config
        self._arguments = dict(arguments)
        self.setup()

    @property
    def config(self) -> CampaignConfiguration:
        if self._config is None:
            raise RuntimeError(f"{type(self).__name__} has not been initialized")
        return self._config

    @property
    def arguments(self) -> Mapping[str, str]:
        return self._arguments

    def setup(self) -> None:
        """Hook for subclasses; may raise OSError when campaign state cannot be opened."""

    @abstractmethod
    def run(self) -> None:
        """
        Run the campaign. Implementations must stop at or before the
        configured duration and persist progress to the campaign directory
        as they go, so an interrupted run can be resumed.
        """
        ...


class NoOpFramework(FuzzFramework):
    """Returns immediately. Useful for checking a build's campaign setup."""

    def run(self) -> None:
        logger.info("No-op framework: nothing to fuzz for {}#{}",
                    self.config.test_class_name, self.config.test_method_name)


class JavaFramework(FuzzFramework):
    """
    Base for engines that drive a single forked JVM. Subclasses name the
    main class and its arguments; the budget is enforced here by stopping
    the JVM once the campaign duration has elapsed.
    """

    def __init__(self):
        super().__init__()
        self.last_result: Optional[RunResult] = None

    @abstractmethod
    def main_class(self) -> str:
        ...

    def main_arguments(self) -> Sequence[str]:
        return [self.config.test_class_name, self.config.test_method_name]

    def extra_java_options(self) -> Sequence[str]:
        return []

    def log_file(self) -> Path:
        return write_log_path(self.config.campaign_directory, "fuzz")

    def run(self) -> None:
        runner = JavaRunner(self.config)
        command = runner.build_command(self.main_class(), self.main_arguments(), self.extra_java_options())
        # append so resumed campaigns keep the history of earlier runs
        with open(self.log_file(), "ab") as log:
            self.last_result = runner.run(command, stdout=log, stderr=log)
        if self.last_result.timed_out:
            logger.info("Campaign stopped after reaching its duration")
        elif self.last_result.returncode != 0:
            logger.warning("Fuzzing JVM exited with status {}", self.last_result.returncode)


class FrameworkRegistry:
    """
    Maps framework names to zero-argument factories. Built-ins are
    registered from a static table; plugins come from entry points.
    """

    BUILTIN: Dict[str, FrameworkFactory] = {
        "noop": NoOpFramework,
        f"{NoOpFramework.__module__}.{NoOpFramework.__qualname__}": NoOpFramework,
    }

    def __init__(self, discover: bool = True):
        self._factories: Dict[str, FrameworkFactory] = dict(self.BUILTIN)
        if discover:
            self._discover()

    def _discover(self) -> None:
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            # loaded lazily so a broken plugin only fails when it is selected
            self._factories.setdefault(ep.name, _EntryPointFactory(ep))
            if ep.value:
                self._factories.setdefault(ep.value.replace(":", "."), _EntryPointFactory(ep))

    def register(self, name: str, factory: FrameworkFactory) -> None:
        self._factories[name] = factory

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def create(self, name: str) -> "FuzzFramework":
        try:
            factory = self._factories[name]
        except KeyError:
            raise FrameworkInstantiationError(
                "Failed to create fuzzing framework instance",
                LookupError(f"Unknown fuzzing framework: {name}"),
            )
        try:
            instance = factory()
        except Exception as e:
            raise FrameworkInstantiationError("Failed to create fuzzing framework instance", e)
        if not isinstance(instance, FuzzFramework):
            raise FrameworkInstantiationError(
                "Failed to create fuzzing framework instance",
                TypeError(f"{type(instance).__name__} is not a FuzzFramework"),
            )
        return instance


class _EntryPointFactory:
    def __init__(self, ep):
        self.ep = ep

    def __call__(self) -> FuzzFramework:
        return self.ep.load()()


def create_framework(config: CampaignConfiguration, name: str, arguments: Mapping[str, str],
                     registry: Optional[FrameworkRegistry] = None) -> FuzzFramework:
    """
    Resolve `name`, construct the framework and initialize it.

    :raises FrameworkInstantiationError: for every failure along the way
    """
    registry = registry if registry is not None else FrameworkRegistry()
    instance = registry.create(name)
    try:
        instance.initialize(config, arguments)
    except Exception as e:
        raise FrameworkInstantiationError("Failed to create fuzzing framework instance", e)
    logger.debug("Initialized framework {} ({})", name, type(instance).__name__)
    return instance
