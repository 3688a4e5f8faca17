import logging
from botocore.exceptions import ClientError
from awsweeper.core.retry import error_code
from awsweeper.resources.base import DEPENDENCY_CODES, ResourceKind, paginate, tags_from_list

SERVICE_ROLE_PATH = '/aws-service-role/'


def _tags_or_none(fetch, name):
    """Fetch tags for one entity; None if it vanished since listing."""
    try:
        return tags_from_list(fetch())
    except ClientError as e:
        if error_code(e) == 'NoSuchEntity':
            logging.debug(f"IAM entity {name} disappeared while listing")
            return None
        raise


class _IamKind(ResourceKind):
    service = 'iam'
    not_found_codes = frozenset(['NoSuchEntity'])
    dependency_codes = DEPENDENCY_CODES | {'DeleteConflict'}


class IamUser(_IamKind):
    type_name = 'aws_iam_user'
    rank = 40

    def list(self, client):
        result = []
        for user in paginate(client, 'list_users', 'Users'):
            name = user['UserName']
            tags = _tags_or_none(lambda: client.list_user_tags(UserName=name).get('Tags', []), name)
            if tags is not None:
                result.append(self.describe(name, tags, name=name, created_at=user.get('CreateDate')))
        return result

    def delete(self, client, resource_id):
        try:
            client.delete_login_profile(UserName=resource_id)
        except ClientError as e:
            if error_code(e) != 'NoSuchEntity':
                raise
        for key in paginate(client, 'list_access_keys', 'AccessKeyMetadata', UserName=resource_id):
            client.delete_access_key(UserName=resource_id, AccessKeyId=key['AccessKeyId'])
        for p in paginate(client, 'list_attached_user_policies', 'AttachedPolicies', UserName=resource_id):
            client.detach_user_policy(UserName=resource_id, PolicyArn=p['PolicyArn'])
        for pol in paginate(client, 'list_user_policies', 'PolicyNames', UserName=resource_id):
            client.delete_user_policy(UserName=resource_id, PolicyName=pol)
        for group in paginate(client, 'list_groups_for_user', 'Groups', UserName=resource_id):
            client.remove_user_from_group(UserName=resource_id, GroupName=group['GroupName'])
        self._delete_credentials(client, resource_id)
        client.delete_user(UserName=resource_id)

    @staticmethod
    def _delete_credentials(client, user):
        # Any of these left behind makes delete_user fail with DeleteConflict
        for mfa in paginate(client, 'list_mfa_devices', 'MFADevices', UserName=user):
            serial = mfa['SerialNumber']
            client.deactivate_mfa_device(UserName=user, SerialNumber=serial)
            if ':mfa/' in serial:
                client.delete_virtual_mfa_device(SerialNumber=serial)
        for key in paginate(client, 'list_ssh_public_keys', 'SSHPublicKeys', UserName=user):
            client.delete_ssh_public_key(UserName=user, SSHPublicKeyId=key['SSHPublicKeyId'])
        for cert in paginate(client, 'list_signing_certificates', 'Certificates', UserName=user):
            client.delete_signing_certificate(UserName=user, CertificateId=cert['CertificateId'])
        creds = client.list_service_specific_credentials(UserName=user).get('ServiceSpecificCredentials', [])
        for cred in creds:
            client.delete_service_specific_credential(
                UserName=user, ServiceSpecificCredentialId=cred['ServiceSpecificCredentialId'])


class IamRole(_IamKind):
    type_name = 'aws_iam_role'
    rank = 40

    def list(self, client):
        result = []
        for role in paginate(client, 'list_roles', 'Roles'):
            name = role['RoleName']
            if role.get('Path', '').startswith(SERVICE_ROLE_PATH) or name.startswith('AWSServiceRoleFor'):
                continue
            tags = _tags_or_none(lambda: client.list_role_tags(RoleName=name).get('Tags', []), name)
            if tags is not None:
                result.append(self.describe(name, tags, name=name, created_at=role.get('CreateDate')))
        return result

    def delete(self, client, resource_id):
        for p in paginate(client, 'list_attached_role_policies', 'AttachedPolicies', RoleName=resource_id):
            client.detach_role_policy(RoleName=resource_id, PolicyArn=p['PolicyArn'])
        for pol in paginate(client, 'list_role_policies', 'PolicyNames', RoleName=resource_id):
            client.delete_role_policy(RoleName=resource_id, PolicyName=pol)
        for profile in paginate(client, 'list_instance_profiles_for_role', 'InstanceProfiles', RoleName=resource_id):
            client.remove_role_from_instance_profile(
                InstanceProfileName=profile['InstanceProfileName'], RoleName=resource_id)
        client.delete_role(RoleName=resource_id)


class IamInstanceProfile(_IamKind):
    type_name = 'aws_iam_instance_profile'
    rank = 30

    def list(self, client):
        return [
            self.describe(p['InstanceProfileName'], tags_from_list(p.get('Tags')),
                          name=p['InstanceProfileName'], created_at=p.get('CreateDate'))
            for p in paginate(client, 'list_instance_profiles', 'InstanceProfiles')
        ]

    def delete(self, client, resource_id):
        profile = client.get_instance_profile(InstanceProfileName=resource_id)['InstanceProfile']
        for role in profile.get('Roles', []):
            client.remove_role_from_instance_profile(InstanceProfileName=resource_id, RoleName=role['RoleName'])
        client.delete_instance_profile(InstanceProfileName=resource_id)


class IamPolicy(_IamKind):
    type_name = 'aws_iam_policy'
    rank = 60

    def list(self, client):
        result = []
        for policy in paginate(client, 'list_policies', 'Policies', Scope='Local'):
            arn = policy['Arn']
            tags = _tags_or_none(lambda: client.list_policy_tags(PolicyArn=arn).get('Tags', []), arn)
            if tags is not None:
                result.append(self.describe(arn, tags, name=policy['PolicyName'],
                                            created_at=policy.get('CreateDate')))
        return result

    def delete(self, client, resource_id):
        paginator = client.get_paginator('list_entities_for_policy')
        for page in paginator.paginate(PolicyArn=resource_id):
            for user in page.get('PolicyUsers', []):
                client.detach_user_policy(UserName=user['UserName'], PolicyArn=resource_id)
            for role in page.get('PolicyRoles', []):
                client.detach_role_policy(RoleName=role['RoleName'], PolicyArn=resource_id)
            for group in page.get('PolicyGroups', []):
                client.detach_group_policy(GroupName=group['GroupName'], PolicyArn=resource_id)
        for version in paginate(client, 'list_policy_versions', 'Versions', PolicyArn=resource_id):
            if not version['IsDefaultVersion']:
                client.delete_policy_version(PolicyArn=resource_id, VersionId=version['VersionId'])
        client.delete_policy(PolicyArn=resource_id)
