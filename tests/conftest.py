import os
import stat
from pathlib import Path

import pytest

from meringue.config import BuildContext, CampaignSettings


def make_executable(path: Path, script: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(script)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_java(tmp_path):
    """A stand-in JVM: records its arguments in the working directory and exits."""
    return make_executable(
        tmp_path / "jdk" / "bin" / "java",
        '#!/bin/sh\nprintf "%s\\n" "$@" > java-args.txt\nexit 0\n',
    )


@pytest.fixture
def build(tmp_path):
    return BuildContext(project_dir=tmp_path / "project", build_dir=tmp_path / "project" / "target")


@pytest.fixture
def settings(fake_java):
    return CampaignSettings(
        test_class="com.example.Target",
        test_method="fuzzTest",
        framework="noop",
        java_executable=fake_java,
        duration="PT1S",
    )


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("JAVA_HOME", raising=False)
    return os.environ
