#!/usr/bin/env python3
"""Main entry point for the configuration export job."""

import argparse
import logging
import os
import sys

from witexport.config import ExportConfig, JobOptions
from witexport.export_job import ExportJob

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Configure logging
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Argument list, defaults to sys.argv

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description='Export work item tracking configuration and commit it.'
    )
    parser.add_argument(
        '--config', required=True, help='Path to job configuration file'
    )
    parser.add_argument(
        '--working-directory',
        required=False,
        help='Directory the steps run in (overrides config file)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='INFO',
        help='Set the logging level'
    )
    parser.add_argument(
        '--timeout-minutes',
        type=float,
        default=None,
        help='Default per-step timeout in minutes (overrides config file)'
    )
    return parser.parse_args(argv)


def validate_config_file(config_path: str) -> None:
    """Validate config file exists.

    Args:
        config_path: Path to config file

    Raises:
        FileNotFoundError: If config file does not exist
    """
    if not os.path.isfile(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")


def main(argv=None) -> int:
    """Main entry point.

    Args:
        argv: Argument list, defaults to sys.argv

    Returns:
        Exit code
    """
    args = parse_args(argv)
    try:
        validate_config_file(args.config)
        config = ExportConfig.from_yaml(args.config)
        options = JobOptions.from_args_and_config(args, config)
    except (ValueError, TypeError, OSError) as e:
        logger.error(str(e))
        return 1

    logging.getLogger().setLevel(getattr(logging, options.log_level))
    options.apply(config)
    logger.info("Working directory: %s", config.working_directory)

    return ExportJob(config).run()


if __name__ == '__main__':
    sys.exit(main())
