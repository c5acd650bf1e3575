"""
Main entry point for surveystats.

Runs one analysis over a data file and prints the result as JSON.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List

import pandas as pd

from surveystats.analysis.runner import ANALYSIS_KINDS, run_analysis, run_auto_analysis
from surveystats.components.config import ConfigManager, load_config_file
from surveystats.errors import StatisticsError


def setup_logging(level: str = 'INFO') -> None:
    """
    Set up logging.

    Args:
        level: Logging level
    """
    level = {'WARN': 'WARNING'}.get(level.upper(), level.upper())
    logging.basicConfig(
        level=getattr(logging, level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def parse_args(argv=None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Survey statistics')

    parser.add_argument(
        '--data',
        required=True,
        help='Data file (.json records or .csv)'
    )

    parser.add_argument(
        '--analysis',
        required=True,
        choices=ANALYSIS_KINDS,
        help='Analysis to run'
    )

    selection = parser.add_mutually_exclusive_group(required=True)
    selection.add_argument(
        '--variables',
        help='Comma-separated variable names'
    )
    selection.add_argument(
        '--auto',
        action='store_true',
        help='Run the analysis for every detected question group'
    )

    parser.add_argument(
        '--config',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (defaults to the configured level)'
    )

    parser.add_argument(
        '--output',
        help='Write the JSON result to this file instead of stdout'
    )

    return parser.parse_args(argv)


def load_rows(filepath: str) -> List[Dict[str, Any]]:
    """
    Load a data table as a list of row mappings.

    Cells are read as strings so that parsing happens in the engine.

    Args:
        filepath: Path to a .json (list of records) or .csv file

    Returns:
        List of rows
    """
    if filepath.endswith('.json'):
        with open(filepath, 'r') as f:
            return json.load(f)
    elif filepath.endswith('.csv'):
        frame = pd.read_csv(filepath, dtype=str, keep_default_na=False)
        return frame.to_dict(orient='records')
    else:
        raise ValueError(f"Unsupported data file format: {filepath}")


def main(argv=None) -> int:
    """
    Main entry point.
    """
    args = parse_args(argv)

    overrides = load_config_file(args.config) if args.config else None
    config = ConfigManager.get_config(overrides)

    setup_logging(args.log_level or config.get('logging.level', 'warn'))
    logger = logging.getLogger('surveystats')

    try:
        rows = load_rows(args.data)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read data file {args.data}: {e}")
        return 1

    try:
        if args.auto:
            result = run_auto_analysis(rows, args.analysis, config=config)
        else:
            variables = [v.strip() for v in args.variables.split(',') if v.strip()]
            result = run_analysis(rows, args.analysis, variables, config)
    except StatisticsError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    output = result.model_dump_json(indent=2)
    if args.output:
        with open(args.output, 'w') as f:
            f.write(output)
    else:
        sys.stdout.write(output + '\n')
    return 0


if __name__ == '__main__':
    sys.exit(main())
