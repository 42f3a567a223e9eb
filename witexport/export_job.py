"""Sequential execution of the configured export steps."""

from dataclasses import dataclass
import logging
from typing import Callable, List, Optional

from witexport.config import ExportConfig, StepConfig
from witexport.process_runner import ProcessResult, run

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """Result of running one step."""
    name: str
    command: str
    result: Optional[ProcessResult]

    @property
    def succeeded(self) -> bool:
        """Whether the step ran and exited with code 0."""
        return self.result is not None and self.result.succeeded


class ExportJob:
    """Runs export steps one at a time, stopping at the first hard failure."""

    def __init__(
        self,
        config: ExportConfig,
        *,
        runner: Callable[..., Optional[ProcessResult]] = run
    ) -> None:
        """Initialize export job.

        Args:
            config: Configuration object
            runner: Callable with the signature of process_runner.run
        """
        self.config = config
        self.runner = runner
        self.outcomes: List[StepOutcome] = []
        self.completed_steps: List[str] = []
        self.failed_steps: List[str] = []
        self.skipped_steps: List[str] = []

    def run_step(self, step: StepConfig) -> StepOutcome:
        """Run a single step.

        Args:
            step: Step configuration

        Returns:
            Outcome of the step

        Raises:
            ValueError: If the step command references undefined variables
        """
        command = step.build_command(self.config.variables)
        runner_config = self.config.runner

        logger.info("Starting step: %s", step.name)
        result = self.runner(
            command,
            step.working_directory or self.config.working_directory,
            step.wait,
            step.poll_interval_seconds or runner_config.poll_interval_seconds,
            step.timeout_minutes or runner_config.timeout_minutes,
            grace_period_seconds=runner_config.grace_period_seconds
        )
        outcome = StepOutcome(name=step.name, command=command, result=result)

        if result is None:
            logger.error(
                "Step %s produced no result (launch failure or timeout)",
                step.name
            )
        elif not result.succeeded:
            logger.error(
                "Step %s failed with exit code %s\nStdout:\n%s\nStderr:\n%s",
                step.name, result.exit_code, result.stdout or "<no output>",
                result.stderr or "<no output>"
            )
        else:
            logger.info("Step completed successfully: %s", step.name)
            if result.stdout:
                logger.debug("Step %s output:\n%s", step.name, result.stdout)
        return outcome

    def run(self) -> int:
        """Run all steps in order.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        steps = self.config.steps
        logger.info("Starting export job with %d steps", len(steps))

        for index, step in enumerate(steps):
            try:
                outcome = self.run_step(step)
            except ValueError as e:
                logger.error("Step %s is misconfigured: %s", step.name, e)
                outcome = StepOutcome(name=step.name, command=step.command,
                                      result=None)
            self.outcomes.append(outcome)

            if outcome.succeeded:
                self.completed_steps.append(step.name)
                continue

            self.failed_steps.append(step.name)
            if step.continue_on_failure:
                logger.warning(
                    "Continuing after failed step %s", step.name
                )
                continue

            self.skipped_steps = [s.name for s in steps[index + 1:]]
            if self.skipped_steps:
                logger.error(
                    "Aborting export job, skipping: %s",
                    ', '.join(self.skipped_steps)
                )
            break

        # Log final status
        logger.info("Export job finished")
        logger.info("Completed steps: %d", len(self.completed_steps))
        logger.info("Failed steps: %d", len(self.failed_steps))

        optional = {s.name for s in steps if s.continue_on_failure}
        if any(name not in optional for name in self.failed_steps):
            logger.error("Export job failed")
            return 1
        return 0
