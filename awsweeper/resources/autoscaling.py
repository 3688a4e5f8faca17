from awsweeper.core.errors import NotFoundError
from awsweeper.core.retry import error_code
from awsweeper.resources.base import DEPENDENCY_CODES, ResourceKind, paginate


class _AutoScalingKind(ResourceKind):
    service = 'autoscaling'
    dependency_codes = DEPENDENCY_CODES | {'ScalingActivityInProgress'}

    def classify(self, error, resource_id):
        # Auto Scaling reports a missing resource as a generic ValidationError
        message = error.response.get('Error', {}).get('Message', '')
        if error_code(error) == 'ValidationError' and 'not found' in message.lower():
            return NotFoundError(self.type_name, resource_id, message, 'ValidationError')
        return super().classify(error, resource_id)


class AutoScalingGroup(_AutoScalingKind):
    type_name = 'aws_autoscaling_group'
    rank = 10

    def list(self, client):
        asgs = paginate(client, 'describe_auto_scaling_groups', 'AutoScalingGroups')
        return [
            self.describe(
                asg['AutoScalingGroupName'],
                {t['Key']: t.get('Value', '') for t in asg.get('Tags', [])},
                name=asg['AutoScalingGroupName'],
                created_at=asg.get('CreatedTime'),
            )
            for asg in asgs
            if asg.get('Status') != 'Delete in progress'
        ]

    def delete(self, client, resource_id):
        client.delete_auto_scaling_group(AutoScalingGroupName=resource_id, ForceDelete=True)


class LaunchConfiguration(_AutoScalingKind):
    type_name = 'aws_launch_configuration'
    rank = 15

    def list(self, client):
        lcs = paginate(client, 'describe_launch_configurations', 'LaunchConfigurations')
        return [
            self.describe(lc['LaunchConfigurationName'], name=lc['LaunchConfigurationName'],
                          created_at=lc.get('CreatedTime'))
            for lc in lcs
        ]

    def delete(self, client, resource_id):
        client.delete_launch_configuration(LaunchConfigurationName=resource_id)
