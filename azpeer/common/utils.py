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

"""Utilities used across the project."""

import functools
import json
import random
import re
import time

from azure import identity
from oslo_log import log as logging
import requests

from azpeer.common import constant
from azpeer.common import exception
from azpeer import config as azpeer_config

LOG = logging.getLogger(__name__)
CONFIG = azpeer_config.CONFIG

_RESOURCE_ID = re.compile(
    r"^/subscriptions/(?P<subscription_id>[^/]+)"
    r"(/resourceGroups/(?P<resource_group>[^/]+))?"
    r"(/providers/(?P<namespace>[^/]+)"
    r"/(?P<resource_type>[^/]+)/(?P<name>[^/]+)"
    r"(/(?P<child_type>[^/]+)/(?P<child_name>[^/]+))?)?/?$",
    re.IGNORECASE)


class _BearerTokenAuth(requests.auth.AuthBase):

    """Attach an Azure Active Directory bearer token to every request.

    The credential object caches the token and renews it when it expires.
    """

    def __init__(self, credential, scope):
        self._credential = credential
        self._scope = scope

    def __call__(self, request):
        token = self._credential.get_token(self._scope)
        request.headers["Authorization"] = "Bearer %s" % token.token
        return request


class _ARMClient(object):

    """Minimalistic client for the Azure Resource Manager REST API.

    :param url:             The base URL of the Resource Manager API.
    :param tenant_id:       The tenant of the service principal.
    :param client_id:       The application id of the service principal.
    :param client_secret:   The secret of the service principal.
    :param allow_insecure:  Whether to disable the validation of
                            HTTPS certificates.
    :param ca_bundle:       The path to a CA_BUNDLE file or directory
                            with certificates of trusted CAs.
    """

    def __init__(self, url, tenant_id=None, client_id=None,
                 client_secret=None, allow_insecure=False, ca_bundle=None):
        self._base_url = url
        self._credentials = (tenant_id, client_id, client_secret)
        self._https_allow_insecure = allow_insecure
        self._https_ca_bundle = ca_bundle
        self._http_session = None

    @property
    def _session(self):
        """The current session used by the client.

        The Session object persists the headers, the authentication hook
        and the connection pool across all the requests sent to the
        Resource Manager.
        """
        if self._http_session is None:
            self._http_session = requests.Session()
            self._http_session.headers.update(self._get_headers())
            self._http_session.verify = self._verify_https_request()

            if all(self._credentials):
                tenant_id, client_id, client_secret = self._credentials
                credential = identity.ClientSecretCredential(
                    tenant_id=tenant_id, client_id=client_id,
                    client_secret=client_secret)
                self._http_session.auth = _BearerTokenAuth(
                    credential, CONFIG.AZURE.token_scope)

        return self._http_session

    @staticmethod
    def _get_headers():
        """Prepare the HTTP headers for the current request."""
        return {
            "Accept": "application/json",
            "Connection": "keep-alive",
            "Content-Type": "application/json; charset=UTF-8",
        }

    def _verify_https_request(self):
        """Whether to disable the validation of HTTPS certificates.

        .. notes::
            When `https_allow_insecure` option is `True` the SSL certificate
            validation for the connection with the Resource Manager API will
            be disabled (please don't use it if you don't know the
            implications of this behaviour).
        """
        if self._https_ca_bundle:
            return self._https_ca_bundle
        else:
            return not self._https_allow_insecure

    @staticmethod
    def _get_error(response):
        """Extract the Resource Manager error code and message."""
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            error = {}
        return error.get("code") or "", error.get("message") or response.text

    def _http_request(self, resource, method=constant.GET, body=None,
                      if_match=False, api_version=None):
        if not resource.startswith("http"):
            url = requests.compat.urljoin(self._base_url, resource)
        else:
            url = resource

        params = None
        if api_version and "api-version=" not in url:
            params = {"api-version": api_version}

        headers = self._get_headers()
        if method in (constant.PUT, constant.PATCH):
            if if_match:
                etag = (body or {}).get("etag", None)
                if etag is not None:
                    headers["If-Match"] = etag

        attempts = 0
        while True:
            try:
                response = self._session.request(
                    method=method, url=url, headers=headers, params=params,
                    data=json.dumps(body) if body else None,
                    timeout=CONFIG.AZURE.http_request_timeout
                )
                break
            except (requests.ConnectionError,
                    requests.RequestException) as exc:
                attempts += 1
                self._http_session = None
                LOG.debug("Request failed: %s", exc)
                if attempts > CONFIG.AZURE.retry_count:
                    if isinstance(exc, requests.exceptions.SSLError):
                        raise exception.CertificateVerifyFailed(
                            "HTTPS certificate validation failed.")
                    raise exception.ProviderUnavailable(details=exc)
                time.sleep(CONFIG.AZURE.retry_interval)

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code
            code, details = self._get_error(exc.response)
            LOG.debug("HTTP Error %(status_code)r: %(details)r",
                      {"status_code": status_code, "details": details})

            if status_code == 404:
                raise exception.NotFound(
                    "Resource %(resource)r was not found.", resource=resource)
            if "Overlap" in code:
                raise exception.AddressSpaceOverlap(
                    "%(resource)r: %(details)s",
                    resource=resource, details=details)
            if "AlreadyExists" in code:
                raise exception.DuplicateName(
                    "%(resource)r: %(details)s",
                    resource=resource, details=details)
            if status_code in constant.TRANSIENT_STATUS_CODES:
                raise exception.ProviderUnavailable(
                    details="%s %s: %s" % (status_code, code, details))
            if status_code == 400:
                raise exception.ServiceException(
                    ("The Resource Manager rejected the request for "
                     "%(resource)r: %(code)s: %(details)s"),
                    resource=resource, code=code, details=details)
            raise

        return response

    def get_resource(self, path, api_version=None):
        """Getting the required information from the API."""
        response = self._http_request(path, api_version=api_version)
        try:
            return response.json()
        except ValueError:
            raise exception.ServiceException("Invalid service response.")

    def update_resource(self, path, data, if_match=None, api_version=None):
        """Create or update the required resource."""
        response = self._http_request(resource=path, method=constant.PUT,
                                      body=data, if_match=if_match,
                                      api_version=api_version)
        try:
            return response.json()
        except ValueError:
            raise exception.ServiceException("Invalid service response.")

    def remove_resource(self, path, api_version=None):
        """Delete the received resource."""
        return self._http_request(path, method=constant.DELETE,
                                  api_version=api_version)


def run_once(function, state=None, errors=None):
    """A memoization decorator, whose purpose is to cache calls.

    Results and failures are cached per set of arguments.
    """
    state = {} if state is None else state
    errors = {} if errors is None else errors

    @functools.wraps(function)
    def _wrapper(*args, **kwargs):
        key = (args, tuple(sorted(kwargs.items())))
        if key in errors:
            # Deliberate use of LBYL.
            raise errors[key]

        try:
            return state[key]
        except KeyError:
            try:
                state[key] = result = function(*args, **kwargs)
                return result
            except Exception as exc:
                errors[key] = exc
                raise
    return _wrapper


@run_once
def get_client(url, tenant_id, client_id, client_secret, allow_insecure,
               ca_bundle):
    """Create a new client for the Resource Manager REST API."""
    return _ARMClient(url, tenant_id, client_id, client_secret,
                      allow_insecure, ca_bundle)


def parse_resource_id(resource_ref):
    """Split a Resource Manager id into its components.

    Returns a dictionary with the `subscription_id`, `resource_group`,
    `namespace`, `resource_type`, `name`, `child_type` and `child_name`
    keys (missing components are `None`).
    """
    match = _RESOURCE_ID.match(resource_ref or "")
    if match is None:
        raise exception.DataProcessingError(
            "Invalid resource id: %(resource_ref)r",
            resource_ref=resource_ref)
    return match.groupdict()


def same_resource_id(first, second):
    """Resource Manager ids are case insensitive."""
    if first is None or second is None:
        return first is second
    return first.rstrip("/").lower() == second.rstrip("/").lower()


def create_random_name(prefix):
    """Return the prefix followed by a random number below 10000."""
    return "%s%d" % (prefix, random.randint(0, 9999))


def get_as_string(value):
    if value is None or isinstance(value, str):
        return value
    else:
        try:
            return value.decode()
        except Exception:
            # This is important, because None will be returned,
            # but not that serious to raise an exception.
            LOG.error("Couldn't decode: %r", value)
