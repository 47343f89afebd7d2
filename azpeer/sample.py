# Copyright 2017 Cloudbase Solutions Srl
#
#    Licensed under the Apache License, Version 2.0 (the "License"); you may
#    not use this file except in compliance with the License. You may obtain
#    a copy of the License at
#
#         http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
#    WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
#    License for the specific language governing permissions and limitations
#    under the License.

"""Network peering sample.

Creates two virtual networks in the same region and subscription and
peers them:

1. network A with two subnets and network B with one subnet, in
   address spaces which do not overlap;
2. the networks are peered using the default options: the address
   spaces are reachable from both sides, no traffic forwarding and no
   gateway transit;
3. the peering record of network A is updated to disallow the access
   to the address space and to allow traffic forwarding;
4. the peering records are removed from both networks.

Everything is created in a temporary resource group which is deleted at
the end.
"""

import os
import sys

from oslo_log import log as logging

from azpeer import client
from azpeer.common import utils
from azpeer import config as azpeer_config
from azpeer import peering

LOG = logging.getLogger(__name__)
CONFIG = azpeer_config.CONFIG

_ENVIRONMENT = (
    ("CLIENT_ID", "client_id"),
    ("CLIENT_SECRET", "client_secret"),
    ("TENANT_ID", "tenant_id"),
    ("SUBSCRIPTION_ID", "subscription_id"),
)


def format_virtual_network(network):
    """Return a multi-line description of a virtual network."""
    lines = [
        "Network: %s" % network.resource_ref,
        "\tName: %s" % network.resource_id,
        "\tResource group: %s" % network.resource_group,
        "\tRegion: %s" % network.location,
        "\tAddress spaces: %s" % ", ".join(
            network.address_space.address_prefixes),
        "\tSubnets:",
    ]
    for subnet in network.subnetworks:
        lines.append("\t\tName: %s" % subnet.resource_id)
        lines.append("\t\tAddress prefix: %s" % subnet.address_prefix)

    lines.append("\tPeerings:")
    for record in network.peerings:
        lines.append("\t\tName: %s" % record.resource_id)
        lines.append("\t\tRemote network: %s" %
                     record.remote_virtual_network.resource_ref)
        lines.append("\t\tPeering state: %s" % record.peering_state)
        lines.append("\t\tAccess from the remote network: %s" %
                     record.allow_virtual_network_access)
        lines.append("\t\tForwarded traffic allowed: %s" %
                     record.allow_forwarded_traffic)
        lines.append("\t\tGateway transit allowed: %s" %
                     record.allow_gateway_transit)
        lines.append("\t\tUses the remote gateways: %s" %
                     record.use_remote_gateways)
    return "\n".join(lines)


def _show_networks(*networks):
    for network in networks:
        network.refresh()
        LOG.info(format_virtual_network(network))


def create_network(name, resource_group, region, address_prefix, subnets):
    """Create a virtual network with the received subnets.

    :param subnets: a list of `(name, address_prefix)` pairs.
    """
    network = client.VirtualNetworks(
        resource_id=name,
        resource_group=resource_group,
        location=region,
        address_space=client.AddressSpace(address_prefixes=[address_prefix]),
        subnetworks=[
            client.Subnets(resource_id=subnet_name, parent_id=name,
                           resource_group=resource_group,
                           address_prefix=subnet_prefix)
            for subnet_name, subnet_prefix in subnets])
    network.validate()
    return network.commit(wait=True)


def run_sample():
    """Create, update and delete a peering between two new networks."""
    region = CONFIG.SAMPLE.region
    resource_group_name = utils.create_random_name(
        CONFIG.SAMPLE.resource_group_prefix)
    vnet_a_name = utils.create_random_name("vnet1-")
    vnet_b_name = utils.create_random_name("vnet2-")
    peering_name = utils.create_random_name("peer")
    resource_group = None

    try:
        LOG.info("Creating the resource group %s...", resource_group_name)
        resource_group = client.ResourceGroups(
            resource_id=resource_group_name, location=region).commit()

        LOG.info("Creating two virtual networks in the same region "
                 "and subscription...")
        network_a = create_network(
            vnet_a_name, resource_group_name, region, "10.0.0.0/27",
            [("subnet1", "10.0.0.0/28"), ("subnet2", "10.0.0.16/28")])
        network_b = create_network(
            vnet_b_name, resource_group_name, region, "10.1.0.0/27",
            [("subnet3", "10.1.0.0/27")])
        _show_networks(network_a, network_b)

        LOG.info("Peering the networks using default settings...\n"
                 "- Network access enabled\n"
                 "- Traffic forwarding disabled\n"
                 "- Gateway use (transit) by the peered network disabled")
        link = peering.create_link(network_a, network_b, peering_name)
        LOG.info("Created a peering")
        _show_networks(network_a, network_b)

        LOG.info("Updating the peering...")
        options = client.PeeringOptions(allow_virtual_network_access=False,
                                        allow_forwarded_traffic=True)
        peering.update_link(link.local, options)
        LOG.info("Updated the peering to disallow network access between "
                 "B and A but allow traffic forwarding from B to A.")
        _show_networks(network_a, network_b)

        LOG.info("Deleting the peering from the networks...")
        peering.delete_link_pair(network_a, network_b, peering_name)
        LOG.info("Deleted the peering from both sides.")
        _show_networks(network_a, network_b)
    finally:
        if resource_group is None:
            LOG.info("Did not create any resources in Azure. "
                     "No clean up is necessary")
        elif CONFIG.SAMPLE.cleanup:
            try:
                LOG.info("Deleting the resource group %s...",
                         resource_group_name)
                client.ResourceGroups.remove(resource_group_name)
                LOG.info("Deleted the resource group: %s",
                         resource_group_name)
            except Exception as exc:
                LOG.error("Failed to delete the resource group %s: %s",
                          resource_group_name, exc)


def _load_environment():
    """Use the service principal from the environment as defaults."""
    for variable, option in _ENVIRONMENT:
        value = os.environ.get(variable)
        if value:
            CONFIG.set_default(option, value, group="AZURE")


def main(argv=None):
    """Entry point for the `azpeer-sample` console script."""
    _load_environment()
    CONFIG(sys.argv[1:] if argv is None else argv, project="azpeer")
    logging.setup(CONFIG, "azpeer")

    try:
        run_sample()
    except Exception:
        LOG.exception("The network peering sample failed.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
