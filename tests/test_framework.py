from datetime import timedelta

import pytest

from meringue.config import CampaignConfiguration
from meringue.errors import FrameworkInstantiationError
from meringue.framework import FrameworkRegistry, FuzzFramework, JavaFramework, NoOpFramework, create_framework

from conftest import make_executable


@pytest.fixture
def config(tmp_path, fake_java):
    campaign = tmp_path / "campaign"
    campaign.mkdir()
    return CampaignConfiguration(
        test_class_name="com.example.Target",
        test_method_name="fuzzTest",
        duration=timedelta(seconds=5),
        campaign_directory=campaign,
        java_options=["-Xmx256m"],
        test_class_path_jar=tmp_path / "lib" / "test.jar",
        java_executable=fake_java,
    )


class RecordingFramework(FuzzFramework):
    def __init__(self):
        super().__init__()
        self.ran = False

    def run(self):
        self.ran = True


class BrokenSetupFramework(FuzzFramework):
    def setup(self):
        raise OSError("cannot open corpus")

    def run(self):
        pass


class EchoFramework(JavaFramework):
    def main_class(self):
        return "edu.example.FuzzMain"


def registry(**factories):
    reg = FrameworkRegistry(discover=False)
    for name, factory in factories.items():
        reg.register(name, factory)
    return reg


def test_builtin_noop(config):
    framework = create_framework(config, "noop", {}, registry=registry())
    assert isinstance(framework, NoOpFramework)
    framework.run()


def test_noop_is_registered_under_its_qualified_name():
    assert "meringue.framework.NoOpFramework" in FrameworkRegistry(discover=False)


def test_initialize_receives_config_and_arguments(config):
    framework = create_framework(config, "rec", {"seed": "1"}, registry=registry(rec=RecordingFramework))
    assert framework.config is config
    assert framework.arguments == {"seed": "1"}
    framework.run()
    assert framework.ran


def test_unknown_framework(config):
    with pytest.raises(FrameworkInstantiationError) as info:
        create_framework(config, "com.example.Missing", {}, registry=registry())
    assert isinstance(info.value.cause, LookupError)


def test_wrong_type(config):
    with pytest.raises(FrameworkInstantiationError) as info:
        create_framework(config, "str", {}, registry=registry(str=str))
    assert isinstance(info.value.cause, TypeError)


def test_constructor_failure(config):
    def explode():
        raise ValueError("boom")

    with pytest.raises(FrameworkInstantiationError) as info:
        create_framework(config, "x", {}, registry=registry(x=explode))
    assert isinstance(info.value.cause, ValueError)


def test_initialization_io_failure(config):
    with pytest.raises(FrameworkInstantiationError) as info:
        create_framework(config, "broken", {}, registry=registry(broken=BrokenSetupFramework))
    assert isinstance(info.value.cause, OSError)


def test_initialize_only_once(config):
    framework = RecordingFramework()
    framework.initialize(config, {})
    with pytest.raises(RuntimeError):
        framework.initialize(config, {})


def test_uninitialized_framework_has_no_config():
    with pytest.raises(RuntimeError):
        RecordingFramework().config


def test_java_framework_launches_jvm(config):
    framework = create_framework(config, "echo", {}, registry=registry(echo=EchoFramework))
    framework.run()
    args = (config.campaign_directory / "java-args.txt").read_text().split("\n")
    assert args[:5] == ["-Xmx256m", "-cp", str(config.test_class_path_jar),
                        "edu.example.FuzzMain", "com.example.Target"]
    assert framework.last_result.returncode == 0
    assert not framework.last_result.timed_out
    assert (config.campaign_directory / "fuzz.log").exists()


def test_java_framework_stops_at_budget(tmp_path, config):
    import dataclasses

    sleeper = make_executable(tmp_path / "slow" / "bin" / "java", "#!/bin/sh\nexec sleep 30\n")
    short = dataclasses.replace(config, java_executable=sleeper, duration=timedelta(seconds=0.5))
    framework = EchoFramework()
    framework.initialize(short, {})
    framework.run()
    assert framework.last_result.timed_out
    assert framework.last_result.elapsed < 10
