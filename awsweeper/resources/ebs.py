from awsweeper.resources.base import DEPENDENCY_CODES, ResourceKind, paginate, tags_from_list


class Volume(ResourceKind):
    type_name = 'aws_ebs_volume'
    service = 'ec2'
    rank = 45
    not_found_codes = frozenset(['InvalidVolume.NotFound'])
    dependency_codes = DEPENDENCY_CODES | {'VolumeInUse'}

    def list(self, client):
        volumes = paginate(client, 'describe_volumes', 'Volumes')
        return [
            self.describe(v['VolumeId'], tags_from_list(v.get('Tags')), created_at=v.get('CreateTime'))
            for v in volumes
        ]

    def delete(self, client, resource_id):
        # Attached volumes fail with VolumeInUse until their instance is gone
        client.delete_volume(VolumeId=resource_id)


class Snapshot(ResourceKind):
    type_name = 'aws_ebs_snapshot'
    service = 'ec2'
    rank = 40
    not_found_codes = frozenset(['InvalidSnapshot.NotFound'])
    # A snapshot backing a registered AMI can't go until the AMI does
    dependency_codes = DEPENDENCY_CODES | {'InvalidSnapshot.InUse'}

    def list(self, client):
        # Only snapshots owned by self
        snapshots = paginate(client, 'describe_snapshots', 'Snapshots', OwnerIds=['self'])
        return [
            self.describe(s['SnapshotId'], tags_from_list(s.get('Tags')), created_at=s.get('StartTime'))
            for s in snapshots
        ]

    def delete(self, client, resource_id):
        client.delete_snapshot(SnapshotId=resource_id)
