"""Export work-tracking server configuration into a repository."""

from .config import ExportConfig, JobOptions, RunnerConfig, StepConfig
from .export_job import ExportJob, StepOutcome
from .process_runner import ProcessResult, run

__all__ = [
    'ExportConfig',
    'ExportJob',
    'JobOptions',
    'ProcessResult',
    'RunnerConfig',
    'StepConfig',
    'StepOutcome',
    'run',
]
