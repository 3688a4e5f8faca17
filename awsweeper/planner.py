"""Orders candidates into deletion batches.

The rank of a type reflects how resources usually contain each other:
things living inside a VPC rank before the VPC, instances before the
subnets they sit in, and so on. This is only a hint that saves retry
passes; the destroyer's retry loop is what actually resolves dependencies.
"""
import logging
from itertools import groupby
from typing import Iterable, Mapping, Optional

from awsweeper.core.models import Batch, Candidate, Plan
from awsweeper.resources.base import DEFAULT_RANK
from awsweeper.resources.registry import rank_table


class Planner:
    def __init__(self, ranks: Optional[Mapping[str, int]] = None, default_rank: int = DEFAULT_RANK):
        self.ranks = dict(rank_table() if ranks is None else ranks)
        self.default_rank = default_rank

    def rank(self, resource_type: str) -> int:
        return self.ranks.get(resource_type, self.default_rank)

    def plan(self, candidates: Iterable[Candidate]) -> Plan:
        """Group candidates by rank, lowest first. Each candidate lands in exactly one batch."""
        unique = {c.sort_key: c for c in candidates}
        ordered = sorted(unique.values(), key=lambda c: (self.rank(c.type), c.sort_key))
        batches = tuple(
            Batch(rank=rank, candidates=tuple(group))
            for rank, group in groupby(ordered, key=lambda c: self.rank(c.type))
        )
        for i, batch in enumerate(batches):
            types = sorted({c.type for c in batch.candidates})
            logging.info(f"Batch {i} (rank {batch.rank}): {len(batch)} resources of {', '.join(types)}")
        return Plan(batches)
