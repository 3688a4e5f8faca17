from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError, NoCredentialsError

from awsweeper.core.errors import (
    DependencyViolationError, NotFoundError, OtherDeleteError, ProviderError, ProviderUnavailableError,
)
from awsweeper.provider import AWSProvider
from tests.fakes import client_error


@pytest.fixture
def session():
    session = MagicMock()
    session.region_name = 'us-east-1'
    return session


@pytest.fixture
def clients(session):
    clients = {}

    def client(service, region_name=None):
        return clients.setdefault(service, MagicMock(name=service))

    session.client.side_effect = client
    return clients


def test_clients_created_once_per_service(session, clients):
    provider = AWSProvider(session)

    assert provider.client('ec2') is provider.client('ec2')
    session.client.assert_called_once_with('ec2', region_name='us-east-1')


def test_check_returns_account(session, clients):
    provider = AWSProvider(session)
    provider.client('sts').get_caller_identity.return_value = {'Account': '123456789012'}

    assert provider.check() == '123456789012'


@pytest.mark.parametrize('error', [
    NoCredentialsError(),
    EndpointConnectionError(endpoint_url='https://sts.amazonaws.com'),
    client_error('InvalidClientTokenId'),
])
def test_check_unavailable(session, clients, error):
    provider = AWSProvider(session)
    provider.client('sts').get_caller_identity.side_effect = error

    with pytest.raises(ProviderUnavailableError):
        provider.check()


def test_list_paginates_fully(session, clients):
    provider = AWSProvider(session)
    paginator = MagicMock()
    paginator.paginate.return_value = [
        {'Subnets': [{'SubnetId': 'subnet-1'}]},
        {'Subnets': [{'SubnetId': 'subnet-2'}]},
    ]
    provider.client('ec2').get_paginator.return_value = paginator

    resources = provider.list('aws_subnet')

    assert [r.id for r in resources] == ['subnet-1', 'subnet-2']


def test_list_error_is_provider_error(session, clients):
    provider = AWSProvider(session)
    provider.client('ec2').get_paginator.side_effect = client_error('UnauthorizedOperation', 'denied')

    with pytest.raises(ProviderError) as excinfo:
        provider.list('aws_subnet')

    assert excinfo.value.resource_type == 'aws_subnet'
    assert 'denied' in excinfo.value.message


def test_list_retries_throttling(session, clients):
    provider = AWSProvider(session)
    paginator = MagicMock()
    paginator.paginate.side_effect = [client_error('RequestLimitExceeded'), [{'Vpcs': [{'VpcId': 'vpc-1'}]}]]
    provider.client('ec2').get_paginator.return_value = paginator

    with patch('time.sleep'):
        resources = provider.list('aws_vpc')

    assert [r.id for r in resources] == ['vpc-1']


def test_list_unknown_type(session, clients):
    with pytest.raises(KeyError):
        AWSProvider(session).list('aws_unknown')


@pytest.mark.parametrize('code, expected', [
    ('InvalidSubnetID.NotFound', NotFoundError),
    ('DependencyViolation', DependencyViolationError),
    ('InvalidParameterValue', OtherDeleteError),
])
def test_delete_classifies_errors(session, clients, code, expected):
    provider = AWSProvider(session)
    provider.client('ec2').delete_subnet.side_effect = client_error(code)

    with pytest.raises(expected):
        provider.delete('aws_subnet', 'subnet-1')


def test_delete_success(session, clients):
    provider = AWSProvider(session)

    provider.delete('aws_subnet', 'subnet-1')

    provider.client('ec2').delete_subnet.assert_called_once_with(SubnetId='subnet-1')


def test_delete_persistent_throttling_is_other_error(session, clients):
    provider = AWSProvider(session, max_attempts=2)
    provider.client('ec2').delete_subnet.side_effect = client_error('Throttling')

    with patch('time.sleep'):
        with pytest.raises(OtherDeleteError) as excinfo:
            provider.delete('aws_subnet', 'subnet-1')

    assert excinfo.value.code == 'Throttling'


def test_delete_connection_error_is_other_error(session, clients):
    provider = AWSProvider(session)
    provider.client('ec2').delete_subnet.side_effect = EndpointConnectionError(endpoint_url='https://ec2')

    with pytest.raises(OtherDeleteError):
        provider.delete('aws_subnet', 'subnet-1')
