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

"""This module contains the Azure Resource Manager resources used for
virtual network peering."""

import ipaddress
import re
import time
import uuid

from oslo_log import log as logging

from azpeer.common import constant
from azpeer.common import exception
from azpeer.common import model
from azpeer.common import utils
from azpeer import config as azpeer_config

LOG = logging.getLogger(__name__)
CONFIG = azpeer_config.CONFIG

_NETWORK_PROVIDER = ("/subscriptions/{subscription_id}"
                     "/resourceGroups/{resource_group}"
                     "/providers/Microsoft.Network")


class _BaseARMModel(model.Model):

    _endpoint = None
    _api_version_option = "network_api_version"

    resource_ref = model.Field(name="resource_ref", key="id",
                               is_property=False, is_read_only=True)
    """The fully qualified Resource Manager id of the resource."""

    resource_id = model.Field(name="resource_id", key="name",
                              is_property=False, is_immutable=True,
                              default=lambda: str(uuid.uuid1()))
    """The name of the resource. The value MUST be unique in the context
    of the resource group if it is a top-level resource, or in the
    context of the direct parent resource if it is a child resource."""

    parent_id = model.Field(
        name="parent_id", key="parentResourceID",
        is_property=False, is_required=False, is_read_only=True,
        is_static=True)
    """The name of the parent resource for child resources."""

    resource_group = model.Field(
        name="resource_group", key="resourceGroupName",
        is_property=False, is_required=False, is_read_only=True,
        is_static=True)
    """The name of the resource group that contains the resource."""

    resource_type = model.Field(name="resource_type", key="type",
                                is_property=False, is_read_only=True)
    """The fully qualified type of the resource."""

    etag = model.Field(name="etag", key="etag", is_property=False,
                       is_read_only=True)
    """A unique read-only string that changes whenever the resource
    is updated."""

    tags = model.Field(name="tags", key="tags", is_property=False,
                       is_required=False)

    provisioning_state = model.Field(name="provisioning_state",
                                     key="provisioningState",
                                     is_read_only=True, is_required=False)
    """Indicates the various states of the resource. Valid values are
    Deleting, Failed, Succeeded, Canceled and Updating."""

    def __str__(self):
        return "%s(%s)" % (self.__class__.__name__, self.resource_id)

    def _reset_model(self, response):
        """Update the fields value with the received information."""

        # pylint: disable=no-member

        # Reset the model to the initial state
        self._provision_done = False    # Set back the provision flag
        self._changes.clear()           # Clear the changes

        # Keep the identity of the resource if the response lacks it
        response.setdefault("name", self.resource_id)
        response.setdefault("parentResourceID", self.parent_id)
        response.setdefault("resourceGroupName", self.resource_group)

        # Process the raw data from the update response, nested
        # documents included
        updated = self.from_raw_data(response)
        # Update the current model representation
        for field_name in self._meta.fields:
            setattr(self, field_name, getattr(updated, field_name))
        self._changes.clear()

        # Lock the current model
        self._provision_done = True

    @staticmethod
    def _get_client():
        """Create a new client for the Resource Manager REST API."""
        return utils.get_client(
            url=CONFIG.AZURE.url,
            tenant_id=CONFIG.AZURE.tenant_id,
            client_id=CONFIG.AZURE.client_id,
            client_secret=CONFIG.AZURE.client_secret,
            allow_insecure=CONFIG.AZURE.https_allow_insecure,
            ca_bundle=CONFIG.AZURE.https_ca_bundle)

    @classmethod
    def _get_api_version(cls):
        return getattr(CONFIG.AZURE, cls._api_version_option)

    @classmethod
    def _get_endpoint(cls, resource_id=None, parent_id=None,
                      resource_group=None):
        if not CONFIG.AZURE.subscription_id:
            raise exception.DataProcessingError(
                "The `subscription_id` option is not set.")

        endpoint = cls._endpoint.format(
            subscription_id=CONFIG.AZURE.subscription_id,
            resource_group=resource_group or "",
            parent_id=parent_id or "",
            resource_id=resource_id or "")
        return endpoint.rstrip("/")

    @staticmethod
    def _get_timeout(timeout):
        if timeout is None:
            return CONFIG.AZURE.operation_timeout
        return timeout

    @classmethod
    def _iter_all(cls, parent_id=None, resource_group=None):
        """Lazily retrieves all the required resources, page by page."""
        client = cls._get_client()
        endpoint = cls._get_endpoint(parent_id=parent_id,
                                     resource_group=resource_group)
        while endpoint:
            response = client.get_resource(
                endpoint, api_version=cls._get_api_version())
            for raw_data in response.get("value", []):
                raw_data["parentResourceID"] = parent_id
                raw_data["resourceGroupName"] = resource_group
                yield cls.from_raw_data(raw_data)
            endpoint = response.get("nextLink")

    @classmethod
    def _get(cls, resource_id, parent_id, resource_group):
        """"Retrieves the required resource."""
        client = cls._get_client()
        endpoint = cls._get_endpoint(resource_id, parent_id, resource_group)
        raw_data = client.get_resource(endpoint,
                                       api_version=cls._get_api_version())
        raw_data["parentResourceID"] = parent_id
        raw_data["resourceGroupName"] = resource_group
        return cls.from_raw_data(raw_data)

    @classmethod
    def get(cls, resource_id=None, parent_id=None, resource_group=None):
        """Retrieves the required resources.

        :param resource_id:      The name of the specific resource.
        :param parent_id:        The name of the parent resource for
                                 child resources.
        :param resource_group:   The resource group that contains the
                                 resource.

        When the :param resource_id: is missing, a list with all the
        resources from the container is returned.
        """

        if not resource_id:
            return list(cls._iter_all(parent_id, resource_group))
        else:
            return cls._get(resource_id, parent_id, resource_group)

    @classmethod
    def remove(cls, resource_id, parent_id=None, resource_group=None,
               wait=True, timeout=None):
        """Delete the required resource.

        :param resource_id:      The name of the specific resource.
        :param parent_id:        The name of the parent resource for
                                 child resources.
        :param resource_group:   The resource group that contains the
                                 resource.
        :param wait:             Whether to wait until the operation is
                                 completed
        :param timeout:          The maximum amount of time required for this
                                 operation to be completed.

        If optional :param wait: is True and timeout is None (the default),
        block at most `operation_timeout` seconds, or until the resource is
        gone when the option is not set. If timeout is a positive number,
        it blocks at most timeout seconds and raises the `TimeOut`
        exception if the resource still exists after that time.

        The `NotFound` exception is raised when the resource does not exist.
        """
        client = cls._get_client()
        endpoint = cls._get_endpoint(resource_id, parent_id, resource_group)
        response = client.remove_resource(endpoint,
                                          api_version=cls._get_api_version())
        if response.status_code == 204:
            # The provider answers with No Content for missing resources
            raise exception.NotFound(object=resource_id,
                                     container=parent_id or resource_group)

        timeout = cls._get_timeout(timeout)
        elapsed_time = 0
        while wait:
            try:
                client.get_resource(endpoint,
                                    api_version=cls._get_api_version())
            except exception.NotFound:
                break

            elapsed_time += CONFIG.AZURE.retry_interval
            if timeout and elapsed_time > timeout:
                raise exception.TimeOut("The request timed out.")
            time.sleep(CONFIG.AZURE.retry_interval)

    def refresh(self):
        """Get the latest representation of the current model."""
        client = self._get_client()
        endpoint = self._get_endpoint(self.resource_id, self.parent_id,
                                      self.resource_group)
        response = client.get_resource(endpoint,
                                       api_version=self._get_api_version())
        self._reset_model(response)

    def commit(self, if_match=None, wait=True, timeout=None):
        """Apply all the changes on the current model.

        :param if_match: Whether to send the current `etag` in order to
                         reject the update if the resource was changed
                         in the meantime.
        :param wait:     Whether to wait until the operation is completed
        :param timeout:  The maximum amount of time required for this
                         operation to be completed.

        If optional :param wait: is True the model is refreshed until the
        provider reports the `Succeeded` provisioning state. If timeout is
        a positive number, it blocks at most timeout seconds and raises
        the `TimeOut` exception if the operation is still in progress.

        Otherwise (wait is false), the model reflects the response of the
        provider to the request.
        """
        if not self._changes:
            return self

        super(_BaseARMModel, self).commit(wait=wait, timeout=timeout)
        client = self._get_client()
        endpoint = self._get_endpoint(self.resource_id, self.parent_id,
                                      self.resource_group)
        request_body = self.dump(include_read_only=False)
        if if_match and self.etag:
            request_body["etag"] = self.etag
        response = client.update_resource(endpoint, data=request_body,
                                          if_match=if_match,
                                          api_version=self._get_api_version())

        timeout = self._get_timeout(timeout)
        elapsed_time = 0
        while wait:
            self.refresh()  # Update the representation of the current model
            if not self.provisioning_state:
                raise exception.ServiceException("The object doesn't contain "
                                                 "`provisioningState`.")
            elif self.provisioning_state == constant.FAILED:
                raise exception.ServiceException(
                    "Failed to complete the required operation.")
            elif self.provisioning_state == constant.CANCELED:
                raise exception.Cancelled(resource=str(self))
            elif self.provisioning_state == constant.SUCCEEDED:
                break

            elapsed_time += CONFIG.AZURE.retry_interval
            if timeout and elapsed_time > timeout:
                raise exception.TimeOut("The request timed out.")
            time.sleep(CONFIG.AZURE.retry_interval)
        else:
            self._reset_model(response)

        return self

    @classmethod
    def from_raw_data(cls, raw_data):
        """Create a new model using raw API response."""
        resource_ref = raw_data.get("id")
        if resource_ref:
            references = utils.parse_resource_id(resource_ref)
            if not raw_data.get("resourceGroupName"):
                raw_data["resourceGroupName"] = references["resource_group"]
            if not raw_data.get("parentResourceID") and \
                    references["child_type"]:
                raw_data["parentResourceID"] = references["name"]

        return super(_BaseARMModel, cls).from_raw_data(raw_data)


class Resource(model.Model):

    """Model for the references to other resources."""

    _regexp = {}

    resource_ref = model.Field(name="resource_ref", key="id",
                               is_property=False, is_required=True)
    """The fully qualified Resource Manager id of the resource."""

    def __init__(self, **fields):
        super(Resource, self).__init__(**fields)
        if not self._regexp:
            self._load_models()

    def __eq__(self, other):
        if not isinstance(other, Resource):
            return False
        return utils.same_resource_id(self.resource_ref, other.resource_ref)

    def __hash__(self):
        return hash((self.resource_ref or "").lower())

    def _load_models(self):
        for model_cls in list(globals().values()):
            if not (isinstance(model_cls, type) and
                    issubclass(model_cls, _BaseARMModel)):
                continue
            endpoint = model_cls._endpoint
            if endpoint is not None:
                regexp = endpoint.format(
                    subscription_id="(?P<subscription_id>[^/]+)",
                    resource_group="(?P<resource_group>[^/]+)",
                    resource_id="(?P<resource_id>[^/]+)",
                    parent_id="(?P<parent_id>[^/]+)")
                self._regexp[model_cls] = re.compile(
                    "^%s/?$" % regexp, re.IGNORECASE)

    @property
    def subscription_id(self):
        """The subscription that owns the referenced resource."""
        return utils.parse_resource_id(self.resource_ref)["subscription_id"]

    def get_resource(self):
        """Return the associated resource."""
        for model_cls, regexp in self._regexp.items():
            match = regexp.search(self.resource_ref)
            if match is None:
                continue

            references = match.groupdict()
            subscription_id = references.pop("subscription_id")
            if subscription_id.lower() != \
                    (CONFIG.AZURE.subscription_id or "").lower():
                raise exception.CrossSubscriptionUnsupported(
                    local=CONFIG.AZURE.subscription_id,
                    remote=self.resource_ref)
            return model_cls.get(**references)

        raise exception.NotFound("No model available for %(resource_ref)r",
                                 resource_ref=self.resource_ref)


class ResourceGroups(_BaseARMModel):

    """Resource Group Model.

    A container that holds related resources. Deleting a resource group
    deletes all the resources it contains.
    """

    _endpoint = "/subscriptions/{subscription_id}/resourcegroups/{resource_id}"
    _api_version_option = "resource_api_version"

    location = model.Field(name="location", key="location",
                           is_property=False, is_required=True)
    """The region where the metadata of the resource group is stored."""

    managed_by = model.Field(name="managed_by", key="managedBy",
                             is_property=False, is_required=False)
    """The id of the resource that manages this resource group."""


class AddressSpace(model.Model):

    """Indicates the address space of a virtual network."""

    address_prefixes = model.Field(
        name="address_prefixes", key="addressPrefixes",
        is_property=False, is_required=True, is_read_only=False,
        default=list)
    """Indicates the valid list of address prefixes that
    can make up this virtual network. The value is an array
    of address prefixes in the format of 0.0.0.0/0.
    The space cannot be changed while the virtual network is peered.
    """

    def networks(self):
        """The address prefixes as `ipaddress` networks."""
        return [ipaddress.ip_network(prefix, strict=False)
                for prefix in self.address_prefixes or []]

    def overlaps(self, other):
        """Return the pairs of address prefixes shared with other."""
        overlapping = []
        for network in self.networks():
            for other_network in other.networks():
                if network.overlaps(other_network):
                    overlapping.append((str(network), str(other_network)))
        return overlapping


class Subnets(_BaseARMModel):

    """Subnet Model.

    A range of addresses from the address space of a virtual network.
    Subnets are owned exclusively by their virtual network.
    """

    _endpoint = _NETWORK_PROVIDER + ("/virtualNetworks/{parent_id}"
                                     "/subnets/{resource_id}")

    parent_id = model.Field(
        name="parent_id", key="parentResourceID",
        is_property=False, is_required=True, is_read_only=True,
        is_static=True)
    """The name of the virtual network that owns the subnet."""

    address_prefix = model.Field(name="address_prefix", key="addressPrefix",
                                 is_required=True)
    """Indicates the address prefix that defines the subnet. The value is
    in the format of 0.0.0.0/0. This value must not overlap with other
    subnets in the virtual network and must fall in the address space
    defined in the virtual network."""


class VirtualNetworkPeerings(_BaseARMModel):

    """Virtual Network Peering Model.

    A peering record is stored under its owning virtual network and
    points to a remote virtual network. A working peering between two
    networks is made of two records, one on each side, and each one of
    them is created, updated and deleted independently.
    """

    _endpoint = _NETWORK_PROVIDER + ("/virtualNetworks/{parent_id}"
                                     "/virtualNetworkPeerings/{resource_id}")
    _volatile_properties = ("provisioningState", "peeringState",
                            "peeringSyncLevel")

    parent_id = model.Field(
        name="parent_id", key="parentResourceID",
        is_property=False, is_required=True, is_read_only=True,
        is_static=True)
    """The name of the virtual network that owns the peering."""

    remote_virtual_network = model.Field(
        name="remote_virtual_network", key="remoteVirtualNetwork",
        is_required=True, is_immutable=True)
    """Reference to the remote virtual network. Once the peering was
    created it cannot be pointed at another network."""

    allow_virtual_network_access = model.Field(
        name="allow_virtual_network_access",
        key="allowVirtualNetworkAccess", default=True)
    """Whether the address space of the owning network is reachable
    from the remote network."""

    allow_forwarded_traffic = model.Field(
        name="allow_forwarded_traffic", key="allowForwardedTraffic",
        default=False)
    """Whether traffic that does not originate in the remote network
    is allowed to flow through the peering."""

    allow_gateway_transit = model.Field(
        name="allow_gateway_transit", key="allowGatewayTransit",
        default=False)
    """Whether the gateway of the owning network can be used by the
    remote network."""

    use_remote_gateways = model.Field(
        name="use_remote_gateways", key="useRemoteGateways",
        default=False)
    """Whether the owning network uses the gateway of the remote
    network."""

    peering_state = model.Field(name="peering_state", key="peeringState",
                                is_read_only=True)
    """The status of the peering: Initiated, Connected or
    Disconnected."""

    peering_sync_level = model.Field(name="peering_sync_level",
                                     key="peeringSyncLevel",
                                     is_read_only=True)
    """Whether the address space of the peering is in sync with the
    address space of the remote network."""

    remote_address_space = model.Field(name="remote_address_space",
                                       key="remoteAddressSpace",
                                       is_read_only=True)
    """The address space of the remote network."""

    @property
    def options(self):
        """The options of the current peering record."""
        return PeeringOptions(
            allow_virtual_network_access=self.allow_virtual_network_access,
            allow_forwarded_traffic=self.allow_forwarded_traffic,
            allow_gateway_transit=self.allow_gateway_transit,
            use_remote_gateways=self.use_remote_gateways)

    def apply_options(self, options):
        """Copy the flags from the received `PeeringOptions`."""
        for field_name in PeeringOptions._meta.fields:
            setattr(self, field_name, getattr(options, field_name))

    @classmethod
    def from_raw_data(cls, raw_data):
        """Create a new model using raw API response."""
        properties = raw_data.get("properties", {})

        raw_content = properties.get("remoteVirtualNetwork")
        if raw_content is not None:
            properties["remoteVirtualNetwork"] = Resource.from_raw_data(
                raw_content)

        raw_content = properties.get("remoteAddressSpace")
        if raw_content is not None:
            properties["remoteAddressSpace"] = AddressSpace.from_raw_data(
                raw_content)

        return super(VirtualNetworkPeerings, cls).from_raw_data(raw_data)


class PeeringOptions(model.Model):

    """The options of a peering record which can be changed at any time.

    The defaults allow access between the address spaces and disable
    traffic forwarding and gateway transit.
    """

    allow_virtual_network_access = model.Field(
        name="allow_virtual_network_access",
        key="allowVirtualNetworkAccess", is_property=False,
        is_required=True, default=True)

    allow_forwarded_traffic = model.Field(
        name="allow_forwarded_traffic", key="allowForwardedTraffic",
        is_property=False, is_required=True, default=False)

    allow_gateway_transit = model.Field(
        name="allow_gateway_transit", key="allowGatewayTransit",
        is_property=False, is_required=True, default=False)

    use_remote_gateways = model.Field(
        name="use_remote_gateways", key="useRemoteGateways",
        is_property=False, is_required=True, default=False)

    def __eq__(self, other):
        if not isinstance(other, PeeringOptions):
            return False
        return self.dump() == other.dump()

    def __hash__(self):
        return hash(tuple(sorted(self.dump().items())))


class VirtualNetworks(_BaseARMModel):

    """Virtual Network Model.

    An isolated address space, subdivided into subnets. The address
    space of the network cannot be changed while the network is peered.
    """

    _endpoint = _NETWORK_PROVIDER + "/virtualNetworks/{resource_id}"

    location = model.Field(name="location", key="location",
                           is_property=False, is_required=True)
    """The region of the virtual network."""

    address_space = model.Field(name="address_space",
                                key="addressSpace",
                                is_required=True)
    """Indicates the address space of the virtual network."""

    subnetworks = model.Field(name="subnetworks", key="subnets",
                              is_required=False, default=list)
    """Indicates the subnets that are on the virtual network."""

    peerings = model.Field(name="peerings", key="virtualNetworkPeerings",
                           is_required=False, is_read_only=True,
                           default=list)
    """The peering records owned by the virtual network, as reported
    by the provider."""

    def validate(self):
        """Check the address space and the subnets of the network."""
        super(VirtualNetworks, self).validate()

        networks = self.address_space.networks()
        seen = {}
        for subnet in self.subnetworks or []:
            if subnet.resource_id in seen:
                raise exception.DataProcessingError(
                    "Duplicate subnet name %(name)r in %(network)r.",
                    name=subnet.resource_id, network=self.resource_id)

            prefix = ipaddress.ip_network(subnet.address_prefix,
                                          strict=False)
            if not any(prefix.version == network.version and
                       prefix.subnet_of(network) for network in networks):
                raise exception.DataProcessingError(
                    "The subnet %(name)r (%(prefix)s) is outside of the "
                    "address space of %(network)r.",
                    name=subnet.resource_id, prefix=prefix,
                    network=self.resource_id)

            for name, other_prefix in seen.items():
                if prefix.overlaps(other_prefix):
                    raise exception.DataProcessingError(
                        "The subnets %(first)r and %(second)r overlap.",
                        first=name, second=subnet.resource_id)
            seen[subnet.resource_id] = prefix

    def get_reference(self):
        """Return a `Resource` which points to the current network."""
        return Resource(resource_ref=self.resource_ref)

    @classmethod
    def from_raw_data(cls, raw_data):
        """Create a new model using raw API response."""
        properties = raw_data.get("properties", {})

        raw_content = properties.get("addressSpace", None)
        if raw_content is not None:
            address_space = AddressSpace.from_raw_data(raw_content)
            properties["addressSpace"] = address_space

        subnetworks = []
        for raw_subnet in properties.get("subnets", []):
            raw_subnet["parentResourceID"] = raw_data.get("name")
            raw_subnet["resourceGroupName"] = raw_data.get(
                "resourceGroupName")
            subnetworks.append(Subnets.from_raw_data(raw_subnet))
        properties["subnets"] = subnetworks

        peerings = []
        for raw_peering in properties.get("virtualNetworkPeerings", []):
            raw_peering["parentResourceID"] = raw_data.get("name")
            raw_peering["resourceGroupName"] = raw_data.get(
                "resourceGroupName")
            peerings.append(VirtualNetworkPeerings.from_raw_data(raw_peering))
        properties["virtualNetworkPeerings"] = peerings

        return super(VirtualNetworks, cls).from_raw_data(raw_data)
