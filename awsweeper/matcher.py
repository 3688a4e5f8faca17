"""Applies a FilterSpec to the live inventory."""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from awsweeper.core.errors import ProviderError
from awsweeper.core.filter import FilterSpec
from awsweeper.core.logging import resource_fields
from awsweeper.core.models import Candidate


@dataclass
class MatchResult:
    candidates: List[Candidate] = field(default_factory=list)
    matched: Dict[str, int] = field(default_factory=dict)
    type_errors: Dict[str, str] = field(default_factory=dict)


class _NotListed(Exception):
    """The cancel signal arrived before the type was listed."""


class Matcher:
    """Lists every targeted type and keeps the resources the filter accepts.

    Types are independent, so they are listed in parallel. A failure while
    listing one type is recorded against that type and the others carry on.
    """

    def __init__(self, provider, workers: int = 10):
        self.provider = provider
        self.workers = workers

    def match(self, filter_spec: FilterSpec, cancel_event: Optional[threading.Event] = None) -> MatchResult:
        cancel_event = cancel_event or threading.Event()
        result = MatchResult()
        types = filter_spec.types
        if not types:
            return result

        with ThreadPoolExecutor(max_workers=min(self.workers, len(types))) as executor:
            future_map = {executor.submit(self._match_type, t, filter_spec, cancel_event): t for t in types}
            for fut in as_completed(future_map):
                resource_type = future_map[fut]
                extra = resource_fields(resource_type)
                try:
                    candidates = fut.result()
                except _NotListed:
                    logging.warning(f"Cancelled before listing {resource_type}", extra=extra)
                    continue
                except ProviderError as e:
                    logging.error(f"Error listing {resource_type}: {e.message}", extra=extra)
                    result.type_errors[resource_type] = e.message
                    continue
                except Exception as e:
                    logging.exception(f"Unexpected error listing {resource_type}", extra=extra)
                    result.type_errors[resource_type] = f"{type(e).__name__}: {e}"
                    continue
                result.matched[resource_type] = len(candidates)
                result.candidates.extend(candidates)

        result.candidates.sort(key=lambda c: c.sort_key)
        return result

    def _match_type(self, resource_type: str, filter_spec: FilterSpec,
                    cancel_event: threading.Event) -> List[Candidate]:
        if cancel_event.is_set():
            raise _NotListed()
        section = filter_spec.get(resource_type)
        descriptors = self.provider.list(resource_type)
        candidates = []
        for descriptor in descriptors:
            matched_by = section.match(descriptor)
            if matched_by is not None:
                candidates.append(Candidate(descriptor, matched_by))
        logging.info(f"{resource_type}: {len(candidates)} of {len(descriptors)} resources match",
                     extra=resource_fields(resource_type))
        return candidates
