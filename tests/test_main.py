import json
import sys

import pytest
from loguru import logger

from meringue.main import main


@pytest.fixture(autouse=True)
def restore_logging():
    # main() points loguru at whatever sys.stderr is while the test runs
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_fuzz_command_completes(tmp_path, fake_java):
    code = main([
        "fuzz",
        "--project-dir", str(tmp_path),
        "--test-class", "com.example.Target",
        "--test-method", "fuzzTest",
        "--framework", "noop",
        "--java-executable", str(fake_java),
        "--duration", "PT1S",
        "--class-path", str(tmp_path / "a.jar"),
    ])
    assert code == 0
    assert (tmp_path / "target" / "meringue" / "lib" / "test.jar").is_file()


def test_fuzz_command_reads_config_file(tmp_path, fake_java):
    config = tmp_path / "meringue.json"
    config.write_text(json.dumps({
        "test_class": "com.example.Target",
        "test_method": "fuzzTest",
        "framework": "noop",
        "java_executable": str(fake_java),
        "duration": "PT1S",
    }))
    out = tmp_path / "out"
    assert main(["fuzz", "--config", str(config), "--output-dir", str(out)]) == 0
    assert (out / "campaign").is_dir()


def test_fuzz_command_reports_errors(tmp_path, fake_java, capsys):
    code = main([
        "fuzz",
        "--project-dir", str(tmp_path),
        "--test-class", "com.example.Target",
        "--test-method", "fuzzTest",
        "--framework", "nope",
        "--java-executable", str(fake_java),
    ])
    assert code == 1
    assert "Failed to create fuzzing framework instance" in capsys.readouterr().err


def test_fuzz_command_rejects_oversized_duration(tmp_path, fake_java, capsys):
    code = main([
        "fuzz",
        "--project-dir", str(tmp_path),
        "--test-class", "com.example.Target",
        "--test-method", "fuzzTest",
        "--framework", "noop",
        "--java-executable", str(fake_java),
        "--duration", "PT99999999999999999999S",
    ])
    assert code == 1
    assert "cannot be parsed to a Duration" in capsys.readouterr().err
    assert not (tmp_path / "target" / "meringue").exists()
