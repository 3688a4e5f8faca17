"""AWSweeper CLI entry point."""
import argparse
import logging
import signal
import sys
import threading
import time

from botocore.exceptions import BotoCoreError

from awsweeper.core.config import Config, load_filter_spec
from awsweeper.core.errors import ConfigurationError, ProviderUnavailableError
from awsweeper.core.logging import setup_logging, get_run_id
from awsweeper.provider import AWSProvider
from awsweeper.reporting import print_report
from awsweeper.resources.registry import supported_types
from awsweeper.sweeper import Sweeper

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_PROVIDER_UNAVAILABLE = 2
EXIT_CANCELLED = 130


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='awsweeper',
        description='AWSweeper - delete AWS resources selected by a YAML filter',
        epilog=f"Supported resource types: {', '.join(supported_types())}",
    )
    parser.add_argument('config', help='Path to YAML (or JSON) filter file')
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--dry-run', dest='force', action='store_false',
                      help='Only report what would be deleted (default)')
    mode.add_argument('--force', dest='force', action='store_true',
                      help='Actually delete resources')
    parser.set_defaults(force=False)
    parser.add_argument('--region', help='AWS region (default: from the environment)')
    parser.add_argument('--profile', help='AWS profile name')
    parser.add_argument('--max-passes', type=int, default=5,
                        help='Retry passes for resources that still have dependents (default: 5)')
    parser.add_argument('--workers', type=int, default=10,
                        help='Concurrent delete calls per batch (default: 10)')
    parser.add_argument('--pass-delay', type=float, default=5.0,
                        help='Seconds to wait between retry passes (default: 5)')
    parser.add_argument('--output', choices=['text', 'json'], default='text',
                        help='Report format')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Verbosity: -v=INFO, -vv=DEBUG')
    parser.add_argument('--json-logs', action='store_true',
                        help='Output logs in JSON format')
    parser.add_argument('-y', '--yes', action='store_true',
                        help='Skip the countdown before deleting')
    return parser.parse_args(argv)


def build_config(args) -> Config:
    return Config(
        dry_run=not args.force,
        region=args.region,
        profile=args.profile,
        max_passes=args.max_passes,
        workers=args.workers,
        pass_delay=args.pass_delay,
        verbosity=args.verbose,
        json_logs=args.json_logs,
        output=args.output,
    )


def countdown(seconds=5):
    """Give the user a moment to abort. Returns False on Ctrl+C."""
    try:
        for i in range(seconds, 0, -1):
            print(f"Starting in {i}s... (Ctrl+C to cancel)", end='\r', file=sys.stderr)
            time.sleep(1)
        print(" " * 40, end='\r', file=sys.stderr)
    except KeyboardInterrupt:
        logging.info("Cancelled by user")
        return False
    return True


def install_cancel_handler(cancel_event: threading.Event):
    """First Ctrl+C stops new batches; a second one interrupts for good."""
    def handler(signum, frame):
        if cancel_event.is_set():
            signal.signal(signal.SIGINT, signal.default_int_handler)
            raise KeyboardInterrupt
        logging.warning("Cancelling: waiting for in-flight deletions to finish")
        cancel_event.set()
    return signal.signal(signal.SIGINT, handler)


def main(argv=None, provider=None):
    args = parse_args(argv)

    try:
        config = build_config(args)
        filter_spec = load_filter_spec(args.config, supported_types())
    except ConfigurationError as e:
        setup_logging(args.verbose, args.json_logs)
        logging.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(config.verbosity, config.json_logs)
    logging.info(f"AWSweeper run_id={get_run_id()} dry_run={config.dry_run}")

    if not config.dry_run:
        logging.warning("FORCE MODE - Resources WILL be deleted")
        if not args.yes and not countdown():
            return EXIT_CANCELLED

    if provider is None:
        try:
            provider = AWSProvider.from_profile(config.profile, config.region)
        except BotoCoreError as e:
            logging.error(f"Provider unavailable: {e}")
            return EXIT_PROVIDER_UNAVAILABLE
    cancel_event = threading.Event()
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = install_cancel_handler(cancel_event)

    try:
        report = Sweeper(provider, config).run(filter_spec, cancel_event=cancel_event)
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except ProviderUnavailableError as e:
        logging.error(f"Provider unavailable: {e}")
        return EXIT_PROVIDER_UNAVAILABLE
    except KeyboardInterrupt:
        logging.error("Interrupted; in-flight deletions may not have been recorded")
        return EXIT_CANCELLED
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    print_report(report, config.output)
    return EXIT_OK


def run():
    sys.exit(main())


if __name__ == '__main__':
    run()
