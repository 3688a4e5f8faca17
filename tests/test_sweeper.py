"""End-to-end runs against the in-memory provider."""
import pytest

from awsweeper.core.config import parse_filter_spec
from awsweeper.core.errors import ConfigurationError, NotFoundError, ProviderUnavailableError
from awsweeper.core.filter import FilterSpec, TypeFilter
from awsweeper.core.models import OutcomeStatus
from awsweeper.resources.registry import supported_types
from awsweeper.sweeper import Sweeper

TAGS_CONFIG = {'aws_subnet': {'tags': {'foo': 'bar'}}}


def ids_config(subnet_id):
    return {'aws_subnet': {'ids': [subnet_id]}}


def spec(data):
    return parse_filter_spec(data, supported_types())


def test_delete_by_tags(provider, config, subnets):
    foo, bar = subnets
    sweeper = Sweeper(provider, config)

    report = sweeper.run(spec(TAGS_CONFIG), dry_run=True)

    assert [(o.id, o.status) for o in report.outcomes] == [(foo.id, OutcomeStatus.SKIPPED)]
    assert provider.exists('aws_subnet', foo.id)
    assert provider.exists('aws_subnet', bar.id)

    report = sweeper.run(spec(TAGS_CONFIG), dry_run=False)

    assert [(o.id, o.status) for o in report.outcomes] == [(foo.id, OutcomeStatus.DELETED)]
    assert not provider.exists('aws_subnet', foo.id)
    assert provider.exists('aws_subnet', bar.id)
    assert provider.exists('aws_vpc', 'vpc-1')


def test_delete_by_ids(provider, config, subnets):
    foo, bar = subnets
    sweeper = Sweeper(provider, config)

    sweeper.run(spec(ids_config(foo.id)), dry_run=True)

    assert provider.exists('aws_subnet', foo.id)
    assert provider.exists('aws_subnet', bar.id)

    report = sweeper.run(spec(ids_config(foo.id)), dry_run=False)

    assert report.succeeded == 1
    assert report.outcomes[0].candidate.matched_by == 'ids'
    assert not provider.exists('aws_subnet', foo.id)
    assert provider.exists('aws_subnet', bar.id)
    # A later delete of the same subnet reports NotFound, which counts as success
    with pytest.raises(NotFoundError):
        provider.delete('aws_subnet', foo.id)


def test_dry_run_is_idempotent(provider, config, subnets):
    sweeper = Sweeper(provider, config)
    filter_spec = spec({'aws_subnet': None, 'aws_vpc': None})

    first = sweeper.run(filter_spec, dry_run=True)
    second = sweeper.run(filter_spec, dry_run=True)

    assert first == second
    assert provider.delete_calls == []
    assert first.skipped == 3


def test_dry_run_is_the_default(provider, config, subnets):
    report = Sweeper(provider, config).run(spec({'aws_subnet': None}))

    assert report.dry_run
    assert provider.delete_calls == []


def test_force_removes_vpc_with_its_subnets(provider, config, subnets):
    report = Sweeper(provider, config).run(spec({'aws_subnet': None, 'aws_vpc': None}), dry_run=False)

    assert report.succeeded == 3
    assert report.failed == 0
    assert provider.resources == {}


def test_vpc_left_blocked_by_untargeted_subnet_fails_after_retries(provider, config, subnets):
    config.max_passes = 2
    report = Sweeper(provider, config).run(
        spec({'aws_subnet': {'tags': {'foo': 'bar'}}, 'aws_vpc': None}), dry_run=False)

    by_id = {o.id: o for o in report.outcomes}
    assert by_id['subnet-foo'].status is OutcomeStatus.DELETED
    assert by_id['vpc-1'].status is OutcomeStatus.FAILED
    assert by_id['vpc-1'].attempts == 3
    assert report.failed == 1


def test_listing_error_reported_and_other_types_continue(provider, config, subnets):
    provider.list_errors['aws_vpc'] = 'AccessDenied'

    report = Sweeper(provider, config).run(spec({'aws_subnet': None, 'aws_vpc': None}), dry_run=False)

    assert report.type_errors == {'aws_vpc': 'AccessDenied'}
    assert report.succeeded == 2
    assert 'aws_vpc' in report.by_type()


def test_every_type_failing_is_total_failure(provider, config, subnets):
    provider.list_errors['aws_subnet'] = 'AccessDenied'

    with pytest.raises(ProviderUnavailableError):
        Sweeper(provider, config).run(spec({'aws_subnet': None}), dry_run=True)


def test_unreachable_provider_fails_fast(config):
    from tests.fakes import FakeProvider
    provider = FakeProvider(unavailable=True)

    with pytest.raises(ProviderUnavailableError):
        Sweeper(provider, config).run(spec({'aws_subnet': None}))
    assert provider.list_calls == []


@pytest.mark.parametrize('filter_spec', [
    FilterSpec({}),
    FilterSpec({'aws_nope': TypeFilter()}),
    {'aws_subnet': None},
])
def test_configuration_errors_before_any_io(provider, config, filter_spec):
    with pytest.raises(ConfigurationError):
        Sweeper(provider, config).run(filter_spec)
    assert provider.list_calls == []


def test_nothing_matched(provider, config, subnets):
    report = Sweeper(provider, config).run(spec({'aws_subnet': {'ids': ['subnet-none']}}), dry_run=False)

    assert report.outcomes == ()
    assert report.matched == {'aws_subnet': 0}
    assert provider.delete_calls == []


def test_unexpected_listing_failure_does_not_abort_run(provider, config, subnets):
    real_list = provider.list

    def list_resources(resource_type):
        if resource_type == 'aws_vpc':
            raise KeyError('VpcId')
        return real_list(resource_type)

    provider.list = list_resources

    report = Sweeper(provider, config).run(spec({'aws_subnet': None, 'aws_vpc': None}), dry_run=True)

    assert 'aws_vpc' in report.type_errors
    assert report.skipped == 2
