from .config import BuildContext, CampaignConfiguration, CampaignSettings
from .coverage import ClassCoverage, Counter, CounterEntity, CoverageBundle, CoverageSource
from .duration import parse_duration
from .errors import (
    ConfigurationError,
    DependencyResolutionError,
    CampaignRunError,
    DurationParseError,
    FrameworkInstantiationError,
    MeringueError,
    StagingError,
)
from .files import build_class_path, build_manifest_jar, ensure_directory
from .framework import FrameworkRegistry, FuzzFramework, JavaFramework, NoOpFramework, create_framework
from .orchestrator import CampaignOrchestrator, CampaignState
from .report import ReportFormat, ReportWriter, write_reports

__version__ = "0.1.0"
