from awsweeper.resources.base import ResourceKind, paginate, tags_from_list

# describe_tags accepts at most 20 load balancer names per call
TAG_BATCH_SIZE = 20


class ClassicLoadBalancer(ResourceKind):
    type_name = 'aws_elb'
    service = 'elb'
    rank = 30
    not_found_codes = frozenset(['LoadBalancerNotFound', 'AccessPointNotFound'])

    def list(self, client):
        lbs = paginate(client, 'describe_load_balancers', 'LoadBalancerDescriptions')
        names = [lb['LoadBalancerName'] for lb in lbs]
        tags = self._tags(client, names)
        return [
            self.describe(lb['LoadBalancerName'], tags.get(lb['LoadBalancerName'], {}),
                          name=lb['LoadBalancerName'], created_at=lb.get('CreatedTime'))
            for lb in lbs
        ]

    def _tags(self, client, names):
        tags = {}
        for i in range(0, len(names), TAG_BATCH_SIZE):
            batch = names[i:i + TAG_BATCH_SIZE]
            for desc in client.describe_tags(LoadBalancerNames=batch).get('TagDescriptions', []):
                tags[desc['LoadBalancerName']] = tags_from_list(desc.get('Tags'))
        return tags

    def delete(self, client, resource_id):
        client.delete_load_balancer(LoadBalancerName=resource_id)
