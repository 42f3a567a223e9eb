"""Configuration classes for export jobs."""

import os
import string
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

from witexport.process_runner import (
    DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_TIMEOUT_MINUTES,
    DETACHED_GRACE_PERIOD_SECONDS
)


@dataclass
class RunnerConfig:
    """Default timing for every step."""
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    timeout_minutes: float = DEFAULT_TIMEOUT_MINUTES
    grace_period_seconds: float = DETACHED_GRACE_PERIOD_SECONDS

    def __post_init__(self):
        """Validate runner configuration."""
        if self.poll_interval_seconds <= 0:
            raise ValueError("Poll interval must be positive")
        if self.timeout_minutes <= 0:
            raise ValueError("Timeout must be positive")
        if self.grace_period_seconds <= 0:
            raise ValueError("Grace period must be positive")


@dataclass
class StepConfig:
    """A single command in an export job."""
    name: Optional[str] = None
    command: Optional[str] = None
    wait: bool = True
    continue_on_failure: bool = False
    working_directory: Optional[str] = None
    poll_interval_seconds: Optional[float] = None
    timeout_minutes: Optional[float] = None

    def __post_init__(self):
        """Validate step configuration."""
        if not self.name:
            raise ValueError("Step name cannot be empty")
        if not self.command or not self.command.strip():
            raise ValueError(f"Step {self.name} has an empty command")
        if self.poll_interval_seconds is not None and \
                self.poll_interval_seconds <= 0:
            raise ValueError(f"Step {self.name} poll interval must be positive")
        if self.timeout_minutes is not None and self.timeout_minutes <= 0:
            raise ValueError(f"Step {self.name} timeout must be positive")

    def placeholders(self) -> List[str]:
        """Names of the {placeholder} fields used by the command."""
        return [
            name for _, name, _, _ in string.Formatter().parse(self.command)
            if name is not None
        ]

    def build_command(self, variables: Dict[str, str]) -> str:
        """Build the command line for execution.

        Args:
            variables: Job variables to substitute into the command

        Returns:
            Command line with placeholders filled in

        Raises:
            ValueError: If the command uses a variable that is not defined
        """
        missing = [
            name for name in self.placeholders() if name not in variables
        ]
        if missing:
            raise ValueError(
                f"Step {self.name} uses undefined variables: "
                f"{', '.join(sorted(set(missing)))}"
            )
        return self.command.format(**variables)


@dataclass
class JobOptions:
    """Combined options from command line and config file."""
    working_directory: str
    log_level: str = 'INFO'
    timeout_minutes: Optional[float] = None

    def __post_init__(self):
        """Validate options."""
        if not self.working_directory:
            raise ValueError('Working directory must be provided')
        if self.timeout_minutes is not None and self.timeout_minutes <= 0:
            raise ValueError('Timeout must be positive')
        os.makedirs(self.working_directory, exist_ok=True)

    @classmethod
    def from_args_and_config(
        cls, args: 'argparse.Namespace', config: 'ExportConfig'
    ) -> 'JobOptions':
        """Create options from command line args and config file.

        Args:
            args: Command line arguments
            config: Config from YAML file

        Returns:
            Combined options
        """
        return cls(
            working_directory=args.working_directory
            or config.working_directory,
            log_level=args.log_level,
            timeout_minutes=args.timeout_minutes
        )

    def apply(self, config: 'ExportConfig') -> None:
        """Write the combined options back into a config."""
        config.working_directory = self.working_directory
        if self.timeout_minutes is not None:
            config.runner.timeout_minutes = self.timeout_minutes


@dataclass
class ExportConfig:
    """Configuration for an export job."""
    working_directory: str
    runner: RunnerConfig
    steps: List[StepConfig]
    variables: Dict[str, str] = field(default_factory=dict)

    def __init__(self, **kwargs):
        """Initialize configuration.

        Args:
            **kwargs: Configuration parameters including 'working_directory',
                'variables', 'runner' and 'steps'

        Raises:
            ValueError: If configuration is invalid
            TypeError: If configuration type is invalid
        """
        self.working_directory = kwargs.get('working_directory')
        if not self.working_directory:
            raise ValueError("Working directory cannot be empty")

        variables = kwargs.get('variables') or {}
        if not isinstance(variables, dict):
            raise TypeError("Variables must be a mapping")
        self.variables = {str(k): str(v) for k, v in variables.items()}

        # Handle runner config
        runner = kwargs.get('runner') or {}
        if isinstance(runner, dict):
            self.runner = RunnerConfig(**runner)
        elif isinstance(runner, RunnerConfig):
            self.runner = runner
        else:
            raise TypeError("Runner configuration must be a dict or RunnerConfig")

        # Handle step configs
        steps = kwargs.get('steps') or []
        if not isinstance(steps, list):
            raise TypeError("Steps must be a list")
        self.steps = []
        for step in steps:
            if isinstance(step, dict):
                self.steps.append(StepConfig(**step))
            elif isinstance(step, StepConfig):
                self.steps.append(step)
            else:
                raise TypeError(
                    "Step configuration must be a dict or StepConfig"
                )
        if not self.steps:
            raise ValueError("At least one step must be configured")

        names = [step.name for step in self.steps]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate step names: {', '.join(duplicates)}")

    @classmethod
    def from_yaml(cls, config_path: str) -> 'ExportConfig':
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ExportConfig object

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If config file is invalid
        """
        if not os.path.isfile(config_path):
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                config_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid config file {config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ValueError(f"Invalid config file {config_path}: "
                             "expected a mapping at the top level")

        return cls(**config_data)
