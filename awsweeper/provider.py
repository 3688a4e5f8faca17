"""boto3 adapter for listing and deleting resources."""
import logging
import threading
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from awsweeper.core.errors import OtherDeleteError, ProviderError, ProviderUnavailableError
from awsweeper.core.logging import resource_fields
from awsweeper.core.models import ResourceDescriptor
from awsweeper.core.retry import ThrottledError, with_backoff
from awsweeper.resources.registry import get_kind


class AWSProvider:
    """Lists and deletes resources through one boto3 session.

    Clients are created lazily, one per service, and shared by the worker
    threads (boto3 clients are thread safe, sessions are not, hence the lock).
    """

    def __init__(self, session: Optional[boto3.session.Session] = None, region: Optional[str] = None,
                 max_attempts: int = 8):
        self.session = session or boto3.session.Session(region_name=region)
        self.region = region or self.session.region_name
        self.max_attempts = max_attempts
        self._clients: Dict[str, object] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_profile(cls, profile: Optional[str] = None, region: Optional[str] = None, **kwargs) -> 'AWSProvider':
        return cls(boto3.session.Session(profile_name=profile, region_name=region), region=region, **kwargs)

    def client(self, service: str):
        with self._lock:
            if service not in self._clients:
                self._clients[service] = self.session.client(service, region_name=self.region)
            return self._clients[service]

    def check(self) -> str:
        """Return the account ID, or raise if the provider is unreachable."""
        try:
            return self.client('sts').get_caller_identity()['Account']
        except (ClientError, BotoCoreError) as e:
            raise ProviderUnavailableError(f"Cannot reach AWS: {e}") from e

    def list(self, resource_type: str) -> List[ResourceDescriptor]:
        kind = get_kind(resource_type)
        try:
            resources = with_backoff(
                lambda: kind.list(self.client(kind.service)),
                f"List {resource_type}",
                max_attempts=self.max_attempts,
            )
        except (ClientError, BotoCoreError, ThrottledError) as e:
            raise ProviderError(resource_type, str(e)) from e
        logging.debug(f"Listed {len(resources)} {resource_type}", extra=resource_fields(resource_type))
        return resources

    def delete(self, resource_type: str, resource_id: str) -> None:
        """Delete one resource.

        Raises:
            NotFoundError: already gone
            DependencyViolationError: still referenced by something else
            OtherDeleteError: anything else
        """
        kind = get_kind(resource_type)
        try:
            with_backoff(
                lambda: kind.delete(self.client(kind.service), resource_id),
                f"Delete {resource_type} {resource_id}",
                max_attempts=self.max_attempts,
            )
        except ClientError as e:
            raise kind.classify(e, resource_id) from e
        except ThrottledError as e:
            raise OtherDeleteError(resource_type, resource_id, str(e), 'Throttling') from e
        except BotoCoreError as e:
            raise OtherDeleteError(resource_type, resource_id, str(e)) from e
