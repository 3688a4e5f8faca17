import logging
from datetime import datetime
from awsweeper.resources.base import DEPENDENCY_CODES, ResourceKind, paginate, tags_from_list

LIVE_INSTANCE_STATES = ['pending', 'running', 'stopping', 'stopped']


def parse_aws_time(value):
    """EC2 returns some timestamps as ISO strings instead of datetimes."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logging.debug(f"Unparseable timestamp {value!r}")
        return None


class Instance(ResourceKind):
    type_name = 'aws_instance'
    service = 'ec2'
    rank = 20
    not_found_codes = frozenset(['InvalidInstanceID.NotFound'])

    def list(self, client):
        reservations = paginate(
            client, 'describe_instances', 'Reservations',
            Filters=[{'Name': 'instance-state-name', 'Values': LIVE_INSTANCE_STATES}],
        )
        return [
            self.describe(i['InstanceId'], tags_from_list(i.get('Tags')), created_at=i.get('LaunchTime'))
            for r in reservations
            for i in r.get('Instances', [])
        ]

    def delete(self, client, resource_id):
        attr = client.describe_instance_attribute(InstanceId=resource_id, Attribute='disableApiTermination')
        if attr['DisableApiTermination']['Value']:
            logging.info(f"Disabling termination protection for {resource_id}")
            client.modify_instance_attribute(InstanceId=resource_id, DisableApiTermination={'Value': False})
        client.terminate_instances(InstanceIds=[resource_id])


class KeyPair(ResourceKind):
    type_name = 'aws_key_pair'
    service = 'ec2'
    rank = 30
    not_found_codes = frozenset(['InvalidKeyPair.NotFound'])

    def list(self, client):
        pairs = client.describe_key_pairs().get('KeyPairs', [])
        return [
            self.describe(kp['KeyName'], tags_from_list(kp.get('Tags')), name=kp['KeyName'],
                          created_at=kp.get('CreateTime'))
            for kp in pairs
        ]

    def delete(self, client, resource_id):
        client.delete_key_pair(KeyName=resource_id)


class ElasticIP(ResourceKind):
    type_name = 'aws_eip'
    service = 'ec2'
    rank = 45
    not_found_codes = frozenset(['InvalidAllocationID.NotFound'])
    dependency_codes = DEPENDENCY_CODES | {'InvalidIPAddress.InUse'}

    def list(self, client):
        addresses = client.describe_addresses().get('Addresses', [])
        return [
            self.describe(a['AllocationId'], tags_from_list(a.get('Tags')))
            for a in addresses
            if 'AllocationId' in a
        ]

    def delete(self, client, resource_id):
        client.release_address(AllocationId=resource_id)


class Image(ResourceKind):
    type_name = 'aws_ami'
    service = 'ec2'
    rank = 30
    not_found_codes = frozenset(['InvalidAMIID.NotFound', 'InvalidAMIID.Unavailable'])

    def list(self, client):
        images = paginate(client, 'describe_images', 'Images', Owners=['self'])
        return [
            self.describe(img['ImageId'], tags_from_list(img.get('Tags')), name=img.get('Name'),
                          created_at=parse_aws_time(img.get('CreationDate')))
            for img in images
        ]

    def delete(self, client, resource_id):
        client.deregister_image(ImageId=resource_id)
