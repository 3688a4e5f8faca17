"""Run controller: match, plan, destroy."""
import logging
import threading
from typing import Optional

from awsweeper.core.config import Config
from awsweeper.core.errors import ConfigurationError, ProviderUnavailableError
from awsweeper.core.filter import FilterSpec
from awsweeper.core.logging import get_run_id, timed
from awsweeper.core.models import Report
from awsweeper.destroyer import Destroyer
from awsweeper.matcher import Matcher
from awsweeper.planner import Planner
from awsweeper.resources.registry import supported_types


class Sweeper:
    """Top-level entry point of a sweep.

    The provider is passed in rather than built here, so tests and other
    callers choose what it talks to.
    """

    def __init__(self, provider, config: Optional[Config] = None, planner: Optional[Planner] = None):
        self.provider = provider
        self.config = config or Config()
        self.matcher = Matcher(provider, workers=self.config.workers)
        self.planner = planner or Planner()
        self.destroyer = Destroyer(
            provider,
            workers=self.config.workers,
            max_passes=self.config.max_passes,
            pass_delay=self.config.pass_delay,
        )

    @timed
    def run(self, filter_spec: FilterSpec, dry_run: Optional[bool] = None,
            cancel_event: Optional[threading.Event] = None) -> Report:
        """Sweep everything ``filter_spec`` selects.

        Raises:
            ConfigurationError: the filter names unsupported types or is empty.
            ProviderUnavailableError: the provider is unreachable, or no
                targeted type could be listed.
        """
        if dry_run is None:
            dry_run = self.config.dry_run
        self.validate(filter_spec)
        logging.info(f"Sweep run_id={get_run_id()} dry_run={dry_run} types={filter_spec.types}")

        account = self.provider.check()
        logging.info(f"Using account {account}")

        result = self.matcher.match(filter_spec, cancel_event=cancel_event)
        if result.type_errors and len(result.type_errors) == len(filter_spec):
            raise ProviderUnavailableError(
                "Listing failed for every targeted type: "
                + "; ".join(f"{t}: {msg}" for t, msg in sorted(result.type_errors.items()))
            )

        plan = self.planner.plan(result.candidates)
        logging.info(f"Planned {len(plan)} deletions in {len(plan.batches)} batches")

        report = self.destroyer.execute(plan, dry_run=dry_run, cancel_event=cancel_event)
        return report.with_matching(result.matched, result.type_errors)

    @staticmethod
    def validate(filter_spec: FilterSpec):
        if not isinstance(filter_spec, FilterSpec):
            raise ConfigurationError(f"Expected a FilterSpec, got {type(filter_spec).__name__}")
        if not len(filter_spec):
            raise ConfigurationError("Filter selects no resource types")
        unknown = [t for t in filter_spec.types if t not in supported_types()]
        if unknown:
            raise ConfigurationError(f"Unsupported resource types: {', '.join(unknown)}")
