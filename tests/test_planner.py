import random

import pytest

from awsweeper.core.models import Candidate, ResourceDescriptor
from awsweeper.planner import Planner
from awsweeper.resources.base import DEFAULT_RANK
from awsweeper.resources.registry import KINDS, rank_table


def candidate(type_, id_):
    return Candidate(ResourceDescriptor(type_, id_), 'all')


def test_containment_order():
    ranks = rank_table()

    assert ranks['aws_autoscaling_group'] < ranks['aws_instance']
    assert ranks['aws_instance'] < ranks['aws_network_interface'] < ranks['aws_subnet']
    assert ranks['aws_subnet'] < ranks['aws_route_table'] < ranks['aws_vpc']
    assert ranks['aws_internet_gateway'] < ranks['aws_vpc']
    assert ranks['aws_security_group'] < ranks['aws_vpc']
    assert ranks['aws_iam_role'] < ranks['aws_iam_policy']


def test_batches_ascending_by_rank():
    plan = Planner().plan([
        candidate('aws_vpc', 'vpc-1'),
        candidate('aws_subnet', 'subnet-2'),
        candidate('aws_instance', 'i-1'),
        candidate('aws_subnet', 'subnet-1'),
    ])

    assert [[c.id for c in b.candidates] for b in plan.batches] == [
        ['i-1'], ['subnet-1', 'subnet-2'], ['vpc-1'],
    ]


def test_unranked_types_default_to_middle():
    planner = Planner(ranks={'first': 1, 'last': 99})

    plan = planner.plan([candidate('last', 'c'), candidate('unknown', 'b'), candidate('first', 'a')])

    assert planner.rank('unknown') == DEFAULT_RANK
    assert [b.rank for b in plan.batches] == [1, DEFAULT_RANK, 99]


def test_types_with_equal_rank_share_a_batch():
    planner = Planner(ranks={'a': 10, 'b': 10})

    plan = planner.plan([candidate('b', '1'), candidate('a', '1')])

    assert len(plan.batches) == 1
    assert [c.type for c in plan.batches[0].candidates] == ['a', 'b']


def test_empty_plan():
    plan = Planner().plan([])

    assert plan.batches == ()
    assert len(plan) == 0


@pytest.mark.parametrize('seed', range(10))
def test_every_candidate_in_exactly_one_batch_and_ranks_ordered(seed):
    rng = random.Random(seed)
    types = sorted(KINDS) + ['aws_unranked']
    candidates = [candidate(rng.choice(types), f"id-{i}") for i in range(40)]
    planner = Planner()

    plan = planner.plan(candidates)

    placed = [c for b in plan.batches for c in b.candidates]
    assert sorted(c.sort_key for c in placed) == sorted(c.sort_key for c in candidates)
    batch_of = {c.sort_key: i for i, b in enumerate(plan.batches) for c in b.candidates}
    for a in candidates:
        for b in candidates:
            if planner.rank(a.type) < planner.rank(b.type):
                assert batch_of[a.sort_key] <= batch_of[b.sort_key]


def test_duplicate_candidates_planned_once():
    c = candidate('aws_subnet', 'subnet-1')

    plan = Planner().plan([c, c])

    assert len(plan) == 1
