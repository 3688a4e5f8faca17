import pytest

from awsweeper.core.config import Config
from tests.fakes import FakeProvider


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def config():
    return Config(pass_delay=0, workers=4)


@pytest.fixture
def subnets(provider):
    """One VPC with two subnets, as in the tag and id scenarios."""
    provider.add('aws_vpc', 'vpc-1', {'Name': 'awsweeper-testacc'})
    foo = provider.add('aws_subnet', 'subnet-foo', {'foo': 'bar', 'Name': 'awsweeper-testacc'})
    bar = provider.add('aws_subnet', 'subnet-bar', {'bar': 'baz', 'Name': 'awsweeper-testacc'})
    provider.block(('aws_vpc', 'vpc-1'), by=('aws_subnet', 'subnet-foo'))
    provider.block(('aws_vpc', 'vpc-1'), by=('aws_subnet', 'subnet-bar'))
    return foo, bar
