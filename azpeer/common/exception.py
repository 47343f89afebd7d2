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

"""azpeer exception handling."""


class AzPeerException(Exception):

    """Base azpeer exception.

    To correctly use this class, inherit from it and define
    a `template` property.

    That `template` will be formated using the keyword arguments
    provided to the constructor.

    Example:
    ::
        class NotFound(AzPeerException):

            template = "The %(object)r was not found in %(container)s."

        raise NotFound(object="peering_ab", container="vnet1")
    """

    template = "An unknown exception occurred."

    def __init__(self, message=None, **kwargs):
        message = message or self.template

        try:
            message = message % kwargs
        except (TypeError, KeyError):
            # Something went wrong during message formatting.
            # Probably kwargs doesn't match a variable in the message.
            message = ("Message: %(template)s. Extra or "
                       "missing info: %(kwargs)s" %
                       {"template": message, "kwargs": kwargs})

        super(AzPeerException, self).__init__(message)


class DataProcessingError(AzPeerException):

    """Base exception class for data processing related errors."""

    template = "The provided information is incomplete or invalid."


class ImmutableFieldViolation(DataProcessingError):

    """The field cannot be changed once the resource was provisioned."""

    template = "The field %(field)r of %(resource)r cannot be changed."


class ServiceException(AzPeerException):

    """Base exception for all the API interaction related errors."""

    template = "Something went wrong."


class TimeOut(ServiceException):

    """The request timed out."""

    template = "The request timed out."


class Cancelled(ServiceException):

    """The long-running operation was canceled before completion."""

    template = "The operation on %(resource)r was canceled."


class NotFound(ServiceException):

    """The required object is not available in container."""

    template = "The %(object)r was not found in %(container)s."


class CertificateVerifyFailed(ServiceException):

    """The received certificate is not valid.

    In order to avoid the current exception the validation of the SSL
    certificate should be disabled for the Resource Manager endpoint. In
    order to do that the `https_allow_insecure` config option should be set.
    """

    template = "The received certificate is not valid."


class NotSupported(ServiceException):

    """The functionality required is not available in the current context."""

    template = "%(feature)s is not available for %(context)s."


class CrossSubscriptionUnsupported(NotSupported):

    """Both networks of a peering must belong to the same subscription."""

    template = ("Peering %(local)r with %(remote)r requires credentials "
                "for two subscriptions.")


class ProviderUnavailable(ServiceException):

    """The provider is temporarily unable to handle the request.

    The whole operation can be retried by the caller.
    """

    template = "The provider is unavailable: %(details)s"


class AddressSpaceOverlap(ServiceException):

    """The address spaces of the networks intersect."""

    template = ("The address space of %(local)r overlaps with the address "
                "space of %(remote)r: %(prefixes)s")


class DuplicateName(ServiceException):

    """A resource with the same name already exists in the container."""

    template = "%(name)r already exists in %(container)r."


class PartialLinkError(ServiceException):

    """Only one side of a peering link was written.

    The `result` attribute holds the `LinkResult` describing which
    sides are present.
    """

    template = "The peering link %(name)r is inconsistent: %(details)s"

    def __init__(self, message=None, result=None, **kwargs):
        super(PartialLinkError, self).__init__(message, **kwargs)
        self.result = result
