import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from loguru import logger

from .config import CampaignConfiguration


@dataclass(frozen=True)
class RunResult:
    returncode: Optional[int]
    timed_out: bool
    elapsed: float


class JavaRunner:
    def __init__(self, config: CampaignConfiguration, grace_period: float = 5.0):
        """
        :param config: campaign whose Java executable, options and test JAR are used
        :param grace_period: seconds to wait after SIGTERM before killing the JVM
        """
        self.config = config
        self.grace_period = grace_period

    def build_command(self, main_class: str, arguments: Sequence[str] = (),
                      extra_options: Sequence[str] = ()) -> List[str]:
        """
        Builds the complete Java command list.
        The test JAR carries the real class path in its manifest, so -cp only ever has one entry.
        """
        return [
            str(self.config.java_executable),
            *self.config.java_options,
            *extra_options,
            "-cp",
            str(self.config.test_class_path_jar),
            main_class,
            *arguments,
        ]

    def build_environment(self) -> Mapping[str, str]:
        env = dict(os.environ)
        env.update(self.config.environment)
        return env

    def run(self, command: Sequence[str], timeout: Optional[float] = None,
            stdout=None, stderr=None) -> RunResult:
        """
        Runs the command inside the campaign directory and stops it once
        `timeout` (default: the campaign duration) has elapsed.
        """
        timeout = self.config.duration_seconds if timeout is None else timeout
        logger.info("Launching JVM: {}", " ".join(command))
        start = time.monotonic()
        process = subprocess.Popen(
            list(command),
            cwd=str(self.config.campaign_directory),
            env=self.build_environment(),
            stdout=stdout,
            stderr=stderr,
        )
        try:
            returncode = process.wait(timeout=timeout)
            timed_out = False
        except subprocess.TimeoutExpired:
            logger.info("Campaign budget of {:.1f}s expired, stopping JVM", timeout)
            returncode = self._stop(process)
            timed_out = True
        except BaseException:
            # KeyboardInterrupt etc: never leave an orphaned JVM behind
            self._stop(process)
            raise
        elapsed = time.monotonic() - start
        logger.debug("JVM exited with {} after {:.1f}s", returncode, elapsed)
        return RunResult(returncode=returncode, timed_out=timed_out, elapsed=elapsed)

    def _stop(self, process: subprocess.Popen) -> Optional[int]:
        process.terminate()
        try:
            return process.wait(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            process.kill()
            return process.wait()


def write_log_path(directory: Path, name: str) -> Path:
    return Path(directory) / f"{name}.log"
