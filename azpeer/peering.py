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

"""Coordinator for the two peering records which make up a link
between two virtual networks.

A link between the networks A and B is stored by the provider as two
independent `VirtualNetworkPeerings` records: one owned by A pointing to
B and one owned by B pointing to A. There is no atomic update for the
pair, so every operation from this module which touches both records
issues two sequential writes and reports which of them succeeded.
"""

import time

from oslo_log import log as logging

from azpeer import client
from azpeer.common import constant
from azpeer.common import exception
from azpeer.common import utils
from azpeer import config as azpeer_config

LOG = logging.getLogger(__name__)
CONFIG = azpeer_config.CONFIG

LOCAL = "local"
REMOTE = "remote"

_IMMUTABLE_FIELDS = ("resource_id", "remote_virtual_network")
_FIELD_ALIASES = {"name": "resource_id"}


class LinkResult(object):

    """The outcome of an operation on both sides of a link.

    :param name:    The name of the peering on the local network.
    :param local:   The record owned by the local network, if present.
    :param remote:  The record owned by the remote network, if present.
    """

    def __init__(self, name, local=None, remote=None):
        self.name = name
        self.local = local
        self.remote = remote
        self.errors = {}
        # Per side: True when deleted, False when it was already gone
        self.deleted = {}

    @property
    def complete(self):
        """Whether both sides of the operation succeeded."""
        return not self.errors

    def describe(self):
        """Human readable description of the state of the link."""
        if self.complete:
            return "both sides of %r are consistent" % self.name

        details = []
        for side in (LOCAL, REMOTE):
            error = self.errors.get(side)
            if error is not None:
                details.append("%s side failed: %s" % (side, error))
            else:
                details.append("%s side succeeded" % side)
        return "; ".join(details)


class PeeringLink(object):

    """Thin view over the two records of a link.

    Nothing is stored for the link itself, the object only keeps
    references to the two independent records.
    """

    def __init__(self, local, remote):
        self.local = local
        self.remote = remote

    @classmethod
    def from_result(cls, result):
        return cls(result.local, result.remote)

    @property
    def is_connected(self):
        return all(peering.peering_state == constant.CONNECTED
                   for peering in (self.local, self.remote))

    def refresh(self):
        """Re-read both records from the provider."""
        self.local.refresh()
        self.remote.refresh()

    def wait_until_connected(self, timeout=None):
        """Poll both records until the provider reports them connected."""
        if timeout is None:
            timeout = CONFIG.AZURE.operation_timeout

        elapsed_time = 0
        while True:
            self.refresh()
            if self.is_connected:
                return self

            elapsed_time += CONFIG.AZURE.retry_interval
            if timeout and elapsed_time > timeout:
                raise exception.TimeOut(
                    "The peering %(name)r is not connected.",
                    name=self.local.resource_id)
            time.sleep(CONFIG.AZURE.retry_interval)


def _check_subscription(network_a, network_b):
    subscription_a = utils.parse_resource_id(
        network_a.resource_ref)["subscription_id"]
    subscription_b = utils.parse_resource_id(
        network_b.resource_ref)["subscription_id"]
    if subscription_a.lower() != subscription_b.lower():
        raise exception.CrossSubscriptionUnsupported(
            local=network_a.resource_ref, remote=network_b.resource_ref)


def _check_address_space(network_a, network_b):
    overlapping = network_a.address_space.overlaps(network_b.address_space)
    if overlapping:
        raise exception.AddressSpaceOverlap(
            local=network_a.resource_id, remote=network_b.resource_id,
            prefixes=", ".join("%s ~ %s" % pair for pair in overlapping))


def _check_name(network, name):
    for peering in describe(network):
        if peering.resource_id.lower() == name.lower():
            raise exception.DuplicateName(name=name,
                                          container=network.resource_id)


def _write_side(network, remote_network, name, options, wait, timeout):
    peering = client.VirtualNetworkPeerings(
        resource_id=name,
        parent_id=network.resource_id,
        resource_group=network.resource_group,
        remote_virtual_network=remote_network.get_reference())
    peering.apply_options(options)
    LOG.debug("Creating peering %s on %s towards %s", name,
              network.resource_id, remote_network.resource_id)
    return peering.commit(wait=wait, timeout=timeout)


def create_link(network_a, network_b, name, options=None, remote_name=None,
                remote_options=None, wait=True, timeout=None):
    """Peer two virtual networks from the same subscription.

    :param network_a:       The `VirtualNetworks` which owns the first record.
    :param network_b:       The `VirtualNetworks` which owns the second record.
    :param name:            The name of the record created on `network_a`.
    :param options:         The `PeeringOptions` for the record of
                            `network_a` (the defaults when missing).
    :param remote_name:     The name of the record created on `network_b`
                            (the same as `name` when missing).
    :param remote_options:  The `PeeringOptions` for the record of
                            `network_b` (mirrors `options` when missing).

    Returns a complete `LinkResult`. All the validations happen before
    the first write; when the second write fails the first record is
    left in place and `PartialLinkError` is raised.
    """
    options = options or client.PeeringOptions()
    remote_options = remote_options or options
    remote_name = remote_name or name

    _check_subscription(network_a, network_b)
    _check_address_space(network_a, network_b)
    _check_name(network_a, name)
    _check_name(network_b, remote_name)

    LOG.info("Peering %s with %s as %s", network_a.resource_id,
             network_b.resource_id, name)
    result = LinkResult(name)
    result.local = _write_side(network_a, network_b, name, options,
                               wait, timeout)
    try:
        result.remote = _write_side(network_b, network_a, remote_name,
                                    remote_options, wait, timeout)
    except Exception as exc:
        result.errors[REMOTE] = exc
        LOG.warning("Only %s has the peering %s: %s",
                    network_a.resource_id, name, exc)
        raise exception.PartialLinkError(name=name,
                                         details=result.describe(),
                                         result=result)

    if wait:
        # The first record changes its state once the second one exists
        result.local.refresh()
    return result


def update_link(peering, options, wait=True, timeout=None, **fields):
    """Apply new options on a single peering record.

    Only the record received is updated; updating the other side of the
    link requires a second call with the record owned by the remote
    network.

    The name and the remote network of a record cannot be changed: passing
    a different `name` (`resource_id`) or `remote_virtual_network` raises
    `ImmutableFieldViolation` before any request is sent.
    """
    for field_name, value in fields.items():
        field_name = _FIELD_ALIASES.get(field_name, field_name)
        if field_name not in _IMMUTABLE_FIELDS:
            raise exception.DataProcessingError(
                "The field %(field)r cannot be updated.", field=field_name)

        current = getattr(peering, field_name)
        if field_name == "remote_virtual_network":
            changed = not utils.same_resource_id(
                getattr(value, "resource_ref", value),
                current.resource_ref)
        else:
            changed = value != current
        if changed:
            raise exception.ImmutableFieldViolation(
                field=field_name, resource=str(peering))

    LOG.info("Updating the peering %s of %s", peering.resource_id,
             peering.parent_id)
    peering.apply_options(options)
    return peering.commit(wait=wait, timeout=timeout)


def delete_link(peering, wait=True, timeout=None):
    """Delete a single peering record from its owning network.

    Raises `NotFound` when the record does not exist.
    """
    LOG.info("Deleting the peering %s of %s", peering.resource_id,
             peering.parent_id)
    client.VirtualNetworkPeerings.remove(
        peering.resource_id, parent_id=peering.parent_id,
        resource_group=peering.resource_group, wait=wait, timeout=timeout)


def _delete_side(network, name, wait, timeout):
    try:
        client.VirtualNetworkPeerings.remove(
            name, parent_id=network.resource_id,
            resource_group=network.resource_group,
            wait=wait, timeout=timeout)
    except exception.NotFound:
        LOG.debug("The peering %s of %s is already gone", name,
                  network.resource_id)
        return False
    return True


def delete_link_pair(network_a, network_b, name, remote_name=None,
                     wait=True, timeout=None):
    """Delete both records of a link.

    Missing records are considered already deleted, so calling this
    function again for the same link succeeds without changes. When the
    second delete fails after the first one succeeded `PartialLinkError`
    is raised.

    Returns a `LinkResult` without records; its `deleted` attribute
    tells for each side whether a record was removed or was already gone.
    """
    remote_name = remote_name or name
    result = LinkResult(name)

    LOG.info("Deleting the peering %s between %s and %s", name,
             network_a.resource_id, network_b.resource_id)
    result.deleted[LOCAL] = _delete_side(network_a, name, wait, timeout)
    try:
        result.deleted[REMOTE] = _delete_side(network_b, remote_name,
                                              wait, timeout)
    except Exception as exc:
        result.errors[REMOTE] = exc
        LOG.warning("The peering %s is left on %s: %s", remote_name,
                    network_b.resource_id, exc)
        raise exception.PartialLinkError(name=name,
                                         details=result.describe(),
                                         result=result)
    return result


def describe(network):
    """Lazily iterate over the peering records owned by the network.

    Each call starts a new listing.
    """
    return client.VirtualNetworkPeerings._iter_all(
        parent_id=network.resource_id,
        resource_group=network.resource_group)
