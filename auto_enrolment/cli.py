# auto_enrolment/cli.py
# Command-line entry point: CSV census in, per-employee results out
import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from auto_enrolment.config.loaders import ConfigLoadError, load_plan_rules
from auto_enrolment.config.plan_rules import PlanRules
from auto_enrolment.engine import AutoEnrolmentEngine, results_frame
from auto_enrolment.exceptions import EnrolmentEngineError
from auto_enrolment.logging_config import setup_logging
from auto_enrolment.plan_rules.eligibility import summarise_eligibility
from auto_enrolment.schema.records import records_from_frame
from auto_enrolment.utils.columns import (
    AUTO_ENROLMENT_DATE,
    EMP_ID,
    EMP_INSURANCE_CLASS,
    EMP_PAY_PERIOD_END,
    EMP_TAX_ID,
    WAITING_PERIOD_END,
)
from auto_enrolment.utils.date_utils import to_date
from auto_enrolment.validation.risk import summarise_population

# Get logger for this module
logger = logging.getLogger(__name__)

# Directory for log files
LOG_DIR = Path("output_dev/enrolment_logs")

# Identifier-like columns are read as text so leading zeros survive
TEXT_DTYPES = {EMP_ID: str, EMP_TAX_ID: str, EMP_INSURANCE_CLASS: str, EMP_PAY_PERIOD_END: str}


def _as_of(value: str) -> date:
    parsed = to_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
    return parsed


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Evaluate auto-enrolment eligibility, dates and data quality for a payroll census."
    )

    # Required arguments
    parser.add_argument("--census", type=str, required=True, help="Path to the CSV payroll census.")

    # Optional arguments
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML plan-rules file (defaults apply when omitted).",
    )
    parser.add_argument(
        "--as-of",
        type=_as_of,
        default=None,
        help="Calculation date, YYYY-MM-DD (default: today).",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write per-employee results to this .csv or .json file.",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print the risk-band roll-up to stdout.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-dir",
        type=str,
        default=str(LOG_DIR),
        help=f"Directory to store log files (default: {LOG_DIR})",
    )

    return parser.parse_args(argv)


def initialize_logging(debug: bool = False, log_dir: Path = LOG_DIR) -> None:
    """Initialize the logging configuration and record run details."""
    setup_logging(log_dir=log_dir, debug=debug)
    logger.info("Starting auto-enrolment evaluation")
    logger.info(f"Command line arguments: {sys.argv}")
    logger.info(f"Pandas version: {pd.__version__}")
    logger.info(f"NumPy version: {np.__version__}")
    if debug:
        logger.debug("Debug logging enabled")


def write_results(df: pd.DataFrame, output: Path) -> None:
    """Write results as CSV or JSON depending on the file suffix."""
    df = df.copy()
    for col in (WAITING_PERIOD_END, AUTO_ENROLMENT_DATE):
        if col in df.columns:
            df[col] = pd.to_datetime(df[col])
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".json":
        df.to_json(output, orient="records", date_format="iso", indent=2)
    else:
        df.to_csv(output, index=False, date_format="%Y-%m-%d")
    logger.info(f"Wrote {len(df)} result rows to {output}")


def run_evaluation(args: argparse.Namespace) -> pd.DataFrame:
    """
    Load configuration and census, evaluate every employee and return the
    results frame.

    Raises:
        FileNotFoundError: If the census file is missing
        ConfigLoadError: If the plan-rules file cannot be loaded
    """
    plan_rules = load_plan_rules(args.config) if args.config else PlanRules()
    as_of = args.as_of or date.today()

    census_path = Path(args.census)
    if not census_path.is_file():
        raise FileNotFoundError(f"Census file not found: {census_path}")
    logger.info(f"Reading census from: {census_path}")
    census = pd.read_csv(census_path, dtype=TEXT_DTYPES)
    records = records_from_frame(census)

    engine = AutoEnrolmentEngine(plan_rules)
    results = engine.evaluate_population(records, as_of)

    if args.summary:
        print(summarise_population(r.validation for r in results).to_string())
        eligibility = summarise_eligibility(r.eligibility for r in results)
        print(
            f"Eligible: {eligibility['eligible']} of {eligibility['total']} "
            f"({eligibility['eligibility_rate']:.1%})"
        )
        for reason, count in eligibility["reasons"].items():
            print(f"{count:>6}  {reason}")

    df = results_frame(results)
    if args.output:
        write_results(df, Path(args.output))
    return df


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the auto-enrolment CLI."""
    args = parse_arguments(argv)
    initialize_logging(debug=args.debug, log_dir=Path(args.log_dir))

    try:
        run_evaluation(args)
        return 0
    except FileNotFoundError as e:
        logger.error(f"Input file not found: {e}", exc_info=True)
    except ConfigLoadError as e:
        logger.error(f"Invalid configuration: {e}", exc_info=True)
    except (EnrolmentEngineError, ValueError) as e:
        logger.error(f"Evaluation failed: {e}", exc_info=True)
    return 1


if __name__ == "__main__":
    sys.exit(main())
