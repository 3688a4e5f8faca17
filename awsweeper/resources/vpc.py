import logging
from botocore.exceptions import ClientError
from awsweeper.resources.base import DEPENDENCY_CODES, ResourceKind, paginate, tags_from_list


class VpcEndpoint(ResourceKind):
    type_name = 'aws_vpc_endpoint'
    service = 'ec2'
    rank = 30
    not_found_codes = frozenset(['InvalidVpcEndpointId.NotFound'])

    def list(self, client):
        endpoints = paginate(client, 'describe_vpc_endpoints', 'VpcEndpoints')
        return [
            self.describe(ep['VpcEndpointId'], tags_from_list(ep.get('Tags')),
                          created_at=ep.get('CreationTimestamp'))
            for ep in endpoints
            if ep.get('State', '').lower() not in ('deleting', 'deleted')
        ]

    def delete(self, client, resource_id):
        resp = client.delete_vpc_endpoints(VpcEndpointIds=[resource_id])
        # This call reports per-endpoint failures in the body instead of raising
        for item in resp.get('Unsuccessful', []):
            error = item.get('Error', {})
            raise ClientError({'Error': {'Code': error.get('Code', ''), 'Message': error.get('Message', '')}},
                              'DeleteVpcEndpoints')


class NatGateway(ResourceKind):
    type_name = 'aws_nat_gateway'
    service = 'ec2'
    rank = 30
    not_found_codes = frozenset(['NatGatewayNotFound', 'InvalidNatGatewayID.NotFound'])

    def list(self, client):
        nats = paginate(
            client, 'describe_nat_gateways', 'NatGateways',
            Filter=[{'Name': 'state', 'Values': ['pending', 'available', 'failed']}],
        )
        return [
            self.describe(nat['NatGatewayId'], tags_from_list(nat.get('Tags')), created_at=nat.get('CreateTime'))
            for nat in nats
        ]

    def delete(self, client, resource_id):
        client.delete_nat_gateway(NatGatewayId=resource_id)


class NetworkInterface(ResourceKind):
    type_name = 'aws_network_interface'
    service = 'ec2'
    rank = 45
    not_found_codes = frozenset(['InvalidNetworkInterfaceID.NotFound'])
    dependency_codes = DEPENDENCY_CODES | {'InvalidNetworkInterface.InUse'}

    def list(self, client):
        enis = paginate(client, 'describe_network_interfaces', 'NetworkInterfaces')
        return [
            self.describe(eni['NetworkInterfaceId'], tags_from_list(eni.get('TagSet')))
            for eni in enis
        ]

    def delete(self, client, resource_id):
        client.delete_network_interface(NetworkInterfaceId=resource_id)


class InternetGateway(ResourceKind):
    type_name = 'aws_internet_gateway'
    service = 'ec2'
    rank = 60
    not_found_codes = frozenset(['InvalidInternetGatewayID.NotFound'])

    def list(self, client):
        igws = paginate(client, 'describe_internet_gateways', 'InternetGateways')
        return [
            self.describe(igw['InternetGatewayId'], tags_from_list(igw.get('Tags')))
            for igw in igws
        ]

    def delete(self, client, resource_id):
        igws = client.describe_internet_gateways(InternetGatewayIds=[resource_id]).get('InternetGateways', [])
        for igw in igws:
            for att in igw.get('Attachments', []):
                vpc_id = att['VpcId']
                logging.info(f"Detaching IGW {resource_id} from {vpc_id}")
                client.detach_internet_gateway(InternetGatewayId=resource_id, VpcId=vpc_id)
        client.delete_internet_gateway(InternetGatewayId=resource_id)


class Subnet(ResourceKind):
    type_name = 'aws_subnet'
    service = 'ec2'
    rank = 70
    not_found_codes = frozenset(['InvalidSubnetID.NotFound'])

    def list(self, client):
        subnets = paginate(client, 'describe_subnets', 'Subnets')
        return [self.describe(sn['SubnetId'], tags_from_list(sn.get('Tags'))) for sn in subnets]

    def delete(self, client, resource_id):
        client.delete_subnet(SubnetId=resource_id)


class RouteTable(ResourceKind):
    type_name = 'aws_route_table'
    service = 'ec2'
    rank = 75
    not_found_codes = frozenset(['InvalidRouteTableID.NotFound'])

    def list(self, client):
        rts = paginate(client, 'describe_route_tables', 'RouteTables')
        # Main route tables go away with their VPC and can't be deleted alone
        return [
            self.describe(rt['RouteTableId'], tags_from_list(rt.get('Tags')))
            for rt in rts
            if not any(assoc.get('Main', False) for assoc in rt.get('Associations', []))
        ]

    def delete(self, client, resource_id):
        rts = client.describe_route_tables(RouteTableIds=[resource_id]).get('RouteTables', [])
        for rt in rts:
            for assoc in rt.get('Associations', []):
                if not assoc.get('Main', False) and 'RouteTableAssociationId' in assoc:
                    client.disassociate_route_table(AssociationId=assoc['RouteTableAssociationId'])
        client.delete_route_table(RouteTableId=resource_id)


class SecurityGroup(ResourceKind):
    type_name = 'aws_security_group'
    service = 'ec2'
    rank = 80
    not_found_codes = frozenset(['InvalidGroup.NotFound', 'InvalidGroupId.NotFound'])

    def list(self, client):
        sgs = paginate(client, 'describe_security_groups', 'SecurityGroups')
        return [
            self.describe(sg['GroupId'], tags_from_list(sg.get('Tags')), name=sg.get('GroupName'))
            for sg in sgs
            if sg.get('GroupName') != 'default'
        ]

    def delete(self, client, resource_id):
        # Rules referencing other groups form cycles that block deletion; drop them first
        sgs = client.describe_security_groups(GroupIds=[resource_id]).get('SecurityGroups', [])
        for sg in sgs:
            if sg.get('IpPermissions'):
                client.revoke_security_group_ingress(GroupId=resource_id, IpPermissions=sg['IpPermissions'])
            if sg.get('IpPermissionsEgress'):
                client.revoke_security_group_egress(GroupId=resource_id, IpPermissions=sg['IpPermissionsEgress'])
        client.delete_security_group(GroupId=resource_id)


class NetworkAcl(ResourceKind):
    type_name = 'aws_network_acl'
    service = 'ec2'
    rank = 80
    not_found_codes = frozenset(['InvalidNetworkAclID.NotFound'])

    def list(self, client):
        nacls = paginate(client, 'describe_network_acls', 'NetworkAcls')
        return [
            self.describe(nacl['NetworkAclId'], tags_from_list(nacl.get('Tags')))
            for nacl in nacls
            if not nacl.get('IsDefault', False)
        ]

    def delete(self, client, resource_id):
        client.delete_network_acl(NetworkAclId=resource_id)


class Vpc(ResourceKind):
    type_name = 'aws_vpc'
    service = 'ec2'
    rank = 90
    not_found_codes = frozenset(['InvalidVpcID.NotFound'])

    def list(self, client):
        vpcs = paginate(client, 'describe_vpcs', 'Vpcs')
        # The default VPC is never a candidate
        return [
            self.describe(vpc['VpcId'], tags_from_list(vpc.get('Tags')))
            for vpc in vpcs
            if not vpc.get('IsDefault', False)
        ]

    def delete(self, client, resource_id):
        client.delete_vpc(VpcId=resource_id)
