"""
Campaign orchestrator: validate -> stage -> load framework -> run.

A single linear pipeline; the first failing step moves the orchestrator to
FAILED and the error propagates unchanged. Directories and the manifest JAR
are left on disk and reused by the next invocation.
"""
from __future__ import annotations

from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import (
    CAMPAIGN_DIR_NAME,
    LIBRARY_DIR_NAME,
    TEST_JAR_NAME,
    BuildContext,
    CampaignConfiguration,
    CampaignSettings,
    default_java_executable,
    validate_java_executable,
)
from .duration import format_duration
from .errors import CampaignRunError, MeringueError
from .files import build_manifest_jar, ensure_directory
from .framework import FrameworkRegistry, FuzzFramework, create_framework


class CampaignState(Enum):
    UNINITIALIZED = "uninitialized"
    VALIDATED = "validated"
    STAGED = "staged"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class CampaignOrchestrator:
    def __init__(self, settings: CampaignSettings, build: BuildContext,
                 registry: Optional[FrameworkRegistry] = None,
                 default_executable=default_java_executable):
        self.settings = settings
        self.build = build
        self.registry = registry
        self.default_executable = default_executable
        self.state = CampaignState.UNINITIALIZED
        self.config: Optional[CampaignConfiguration] = None

        self._java_executable: Optional[Path] = None
        self._duration: Optional[timedelta] = None
        self.output_dir = settings.resolve_output_dir(build)

    @property
    def library_directory(self) -> Path:
        return self.output_dir / LIBRARY_DIR_NAME

    @property
    def campaign_directory(self) -> Path:
        return self.output_dir / CAMPAIGN_DIR_NAME

    @property
    def test_jar(self) -> Path:
        return self.library_directory / TEST_JAR_NAME

    def execute(self) -> CampaignState:
        """Run the whole pipeline; returns COMPLETED or raises."""
        try:
            self.validate()
            self.stage()
            framework = self.load_framework()
            self.run(framework)
        except MeringueError as e:
            self._transition(CampaignState.FAILED)
            logger.error("Campaign failed: {}", e)
            raise
        except BaseException:
            self._transition(CampaignState.FAILED)
            raise
        return self.state

    def validate(self) -> None:
        # nothing touches the filesystem until these checks pass
        self._expect(CampaignState.UNINITIALIZED)
        self.settings.require_identifiers()
        java = self.settings.java_executable
        if java is None:
            java = self.default_executable()
        self._java_executable = validate_java_executable(java)
        self._duration = self.settings.resolve_duration()
        self._transition(CampaignState.VALIDATED)

    def stage(self) -> CampaignConfiguration:
        self._expect(CampaignState.VALIDATED)
        ensure_directory(self.output_dir)
        ensure_directory(self.library_directory)
        ensure_directory(self.campaign_directory)
        elements = self.build.test_class_path_elements()
        build_manifest_jar(elements, self.test_jar)
        logger.info("Staged {} class path element(s) into {}", len(elements), self.test_jar)
        self.config = CampaignConfiguration(
            test_class_name=self.settings.test_class,
            test_method_name=self.settings.test_method,
            duration=self._duration,
            campaign_directory=self.campaign_directory,
            java_options=tuple(self.settings.java_options),
            test_class_path_jar=self.test_jar,
            java_executable=self._java_executable,
            environment=self.settings.environment,
        )
        self._transition(CampaignState.STAGED)
        return self.config

    def load_framework(self) -> FuzzFramework:
        self._expect(CampaignState.STAGED)
        return create_framework(self.config, self.settings.framework,
                                self.settings.framework_arguments, registry=self.registry)

    def run(self, framework: FuzzFramework) -> None:
        self._expect(CampaignState.STAGED)
        self._transition(CampaignState.RUNNING)
        logger.info("Fuzzing {}#{} with {} for up to {}",
                    self.config.test_class_name, self.config.test_method_name,
                    self.settings.framework, format_duration(self.config.duration))
        try:
            framework.run()
        except MeringueError:
            raise
        except Exception as e:
            raise CampaignRunError("Fuzzing campaign failed", e)
        self._transition(CampaignState.COMPLETED)

    def _expect(self, state: CampaignState) -> None:
        if self.state is not state:
            raise RuntimeError(f"Expected campaign state {state.value}, was {self.state.value}")

    def _transition(self, state: CampaignState) -> None:
        logger.debug("Campaign state {} -> {}", self.state.value, state.value)
        self.state = state
