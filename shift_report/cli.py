"""
Command line entry point for the shift report.

Usage:
    shift-report morning
    shift-report night --preview
"""
import argparse
import asyncio
import logging
import smtplib
import sys
from typing import List, Optional

from .config import load_config
from .errors import AzureDevOpsError, ConfigurationError, CredentialError, CellFormatError
from .log_sanitizer import get_sanitizing_filter
from .models import OutputMode
from .report import ShiftReport
from .shifts import SHIFTS
from .validation import ValidationError

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="shift-report",
        description="Query Azure DevOps work items for a shift and e-mail them as an HTML table"
    )
    parser.add_argument(
        "shift",
        choices=list(SHIFTS),
        help="Shift whose UTC time window selects the query date"
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Print the table to the console instead of composing an e-mail"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    return parser.parse_args(argv)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    sanitizer = get_sanitizing_filter()
    for handler in logging.getLogger().handlers:
        handler.addFilter(sanitizer)

    # The SDK and msrest log full request details at DEBUG
    for noisy in ("azure", "msrest", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    mode = OutputMode.CONSOLE if args.preview else OutputMode.HTML

    try:
        config = load_config()
        outcome = asyncio.run(ShiftReport(config).run(args.shift, mode))
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except (CredentialError, AzureDevOpsError, CellFormatError) as e:
        logger.error(f"Report aborted: {e}")
        return 1
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Mail hand-off failed: {e}")
        return 1

    if mode is OutputMode.CONSOLE:
        print(outcome.output.content)
    elif outcome.delivered_to:
        print(f"Draft written to {outcome.delivered_to}")
    else:
        print(f"Report sent to {config.recipient}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
