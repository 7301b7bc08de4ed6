# meringue/config.py
from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

from loguru import logger

from .duration import parse_duration
from .errors import ConfigurationError, DependencyResolutionError, MeringueError
from .files import is_java_executable, java_home_to_java_exec

DEFAULT_DURATION = "P1D"  # one day
OUTPUT_DIR_NAME = "meringue"
LIBRARY_DIR_NAME = "lib"
CAMPAIGN_DIR_NAME = "campaign"
TEST_JAR_NAME = "test.jar"


@dataclass(frozen=True, slots=True)
class CampaignConfiguration:
    """
    Everything a fuzzing framework needs to run one campaign.
    Built once by the orchestrator; frameworks only read it.
    """
    test_class_name: str
    test_method_name: str
    duration: timedelta
    campaign_directory: Path
    java_options: tuple[str, ...]
    test_class_path_jar: Path
    java_executable: Path
    environment: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.test_class_name:
            raise ConfigurationError("Test class name must not be empty")
        if not self.test_method_name:
            raise ConfigurationError("Test method name must not be empty")
        if self.duration < timedelta(0):
            raise ConfigurationError(f"Duration must not be negative: {self.duration}")
        # freeze the containers too, not just the attribute bindings
        object.__setattr__(self, "java_options", tuple(self.java_options))
        object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))
        object.__setattr__(self, "campaign_directory", Path(self.campaign_directory))
        object.__setattr__(self, "test_class_path_jar", Path(self.test_class_path_jar))
        object.__setattr__(self, "java_executable", Path(self.java_executable))

    @property
    def duration_seconds(self) -> float:
        return self.duration.total_seconds()


def default_java_executable(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    The Java executable used when none is configured: JAVA_HOME's bin/java,
    otherwise the `java` found on PATH (resolved through symlinks so that
    it ends with bin/java).
    """
    environ = os.environ if environ is None else environ
    java_home = environ.get("JAVA_HOME")
    if java_home:
        return java_home_to_java_exec(Path(java_home))
    found = shutil.which("java", path=environ.get("PATH"))
    if found is None:
        return None
    return Path(found).resolve()


def validate_java_executable(path: Optional[Path]) -> Path:
    if path is None or not is_java_executable(Path(path)):
        raise ConfigurationError(f"Invalid Java executable: {path}")
    return Path(path)


@dataclass
class BuildContext:
    """
    What the build system hands over: where the project lives, where build
    output goes and a callable producing the resolved test class path.
    """
    project_dir: Path
    build_dir: Path
    test_class_path: Callable[[], Iterable[Path]] = lambda: ()

    def test_class_path_elements(self) -> set[Path]:
        try:
            return {Path(p) for p in self.test_class_path()}
        except MeringueError:
            raise
        except Exception as e:
            raise DependencyResolutionError("Required test dependency was not resolved", e)


@dataclass
class CampaignSettings:
    """
    User-facing configuration surface. Values arrive from a JSON file, the
    command line or a build plugin, and are validated by the orchestrator.
    """
    test_class: Optional[str] = None
    test_method: Optional[str] = None
    framework: Optional[str] = None
    output_dir: Optional[Path] = None  # defaults to <build_dir>/meringue
    java_executable: Optional[Path] = None  # defaults to default_java_executable()
    framework_arguments: dict[str, str] = field(default_factory=dict)
    java_options: list[str] = field(default_factory=list)
    duration: str = DEFAULT_DURATION
    environment: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "CampaignSettings":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        values = dict(data)
        for key in ("output_dir", "java_executable"):
            if values.get(key) is not None:
                values[key] = Path(values[key])
        if "framework_arguments" in values:
            values["framework_arguments"] = {str(k): str(v) for k, v in values["framework_arguments"].items()}
        if "environment" in values:
            values["environment"] = {str(k): str(v) for k, v in values["environment"].items()}
        if "java_options" in values:
            values["java_options"] = [str(o) for o in values["java_options"]]
        return cls(**values)

    @classmethod
    def from_json(cls, path: Path) -> "CampaignSettings":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read configuration file {path}", e)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
        logger.debug("Loaded settings from {}", path)
        return cls.from_mapping(data)

    def merged(self, overrides: Mapping[str, object]) -> "CampaignSettings":
        """Return a copy with every non-empty override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, value in overrides.items():
            if value is None or value == [] or value == {}:
                continue
            if key in ("framework_arguments", "environment"):
                value = {**values[key], **value}
            values[key] = value
        return CampaignSettings.from_mapping(values)

    def resolve_output_dir(self, build: BuildContext) -> Path:
        if self.output_dir is not None:
            return Path(self.output_dir)
        return Path(build.build_dir) / OUTPUT_DIR_NAME

    def resolve_duration(self) -> timedelta:
        value = parse_duration(self.duration)
        if value < timedelta(0):
            raise ConfigurationError(f"Duration must not be negative: {self.duration}")
        return value

    def require_identifiers(self) -> None:
        for name in ("test_class", "test_method", "framework"):
            if not getattr(self, name):
                raise ConfigurationError(f"Missing required setting: {name}")
