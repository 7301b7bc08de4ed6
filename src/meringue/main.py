import argparse
import os
import sys
from pathlib import Path

from loguru import logger

from .config import BuildContext, CampaignSettings
from .errors import MeringueError
from .orchestrator import CampaignOrchestrator


def setup_logging(debug: bool = False):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO",
               format="<level>[{level}]</level> {message}")
    logger.debug("Logging initialized (debug={})", debug)


def parse_key_value(text: str):
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return key, value


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="meringue", description="Run a bounded fuzzing campaign against a JVM test")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    fuzz = sub.add_parser("fuzz", help="Stage the test class path and run a fuzzing campaign")
    fuzz.add_argument("--config", type=Path, help="JSON file with campaign settings (command line values win)")
    fuzz.add_argument("--project-dir", type=Path, default=Path("."), help="Project root directory")
    fuzz.add_argument("--build-dir", type=Path, help="Build output directory (default: <project-dir>/target)")
    fuzz.add_argument("--output-dir", type=Path, help="Output directory (default: <build-dir>/meringue)")
    fuzz.add_argument("--test-class", help="Fully-qualified name of the test class")
    fuzz.add_argument("--test-method", help="Name of the test method")
    fuzz.add_argument("--framework", help="Name of the fuzzing framework")
    fuzz.add_argument("--framework-argument", action="append", type=parse_key_value, default=[],
                      metavar="KEY=VALUE", help="Argument passed to the framework (repeatable)")
    fuzz.add_argument("--java-executable", type=Path, help="Java executable (default: from JAVA_HOME or PATH)")
    fuzz.add_argument("--java-option", action="append", default=[],
                      help="JVM option for the test JVM (repeatable, order kept)")
    fuzz.add_argument("--duration", help="Maximum campaign duration, ISO-8601 (default: P1D)")
    fuzz.add_argument("--class-path", default="",
                      help=f"Test class path elements separated by {os.pathsep!r}")
    return parser.parse_args(argv)


def build_settings(args) -> CampaignSettings:
    settings = CampaignSettings.from_json(args.config) if args.config else CampaignSettings()
    return settings.merged({
        "output_dir": args.output_dir,
        "test_class": args.test_class,
        "test_method": args.test_method,
        "framework": args.framework,
        "framework_arguments": dict(args.framework_argument),
        "java_executable": args.java_executable,
        "java_options": args.java_option,
        "duration": args.duration,
    })


def build_context(args) -> BuildContext:
    build_dir = args.build_dir if args.build_dir is not None else args.project_dir / "target"
    elements = [Path(e) for e in args.class_path.split(os.pathsep) if e]
    return BuildContext(project_dir=args.project_dir, build_dir=build_dir,
                        test_class_path=lambda: elements)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.debug)
    try:
        orchestrator = CampaignOrchestrator(build_settings(args), build_context(args))
        state = orchestrator.execute()
    except MeringueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    logger.info("Campaign {}", state.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
