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

"""Config options available for the Azure Resource Manager client."""

from oslo_config import cfg

from azpeer.common import constant
from azpeer.config import base as config_base


class AzureOptions(config_base.Options):

    """Config options available for the Azure Resource Manager API."""

    def __init__(self, config):
        super(AzureOptions, self).__init__(config, group="AZURE")
        self._options = [
            cfg.StrOpt(
                "url", default="https://management.azure.com/",
                help="The base URL of the Azure Resource Manager API."),
            cfg.StrOpt(
                "subscription_id",
                help="The subscription that owns all the managed resources."),
            cfg.StrOpt(
                "tenant_id",
                help="The Azure Active Directory tenant of the service "
                     "principal."),
            cfg.StrOpt(
                "client_id",
                help="The application (client) id of the service principal."),
            cfg.StrOpt(
                "client_secret",
                help="The secret of the service principal.",
                secret=True),
            cfg.StrOpt(
                "token_scope", default=constant.MANAGEMENT_SCOPE,
                help="The OAuth2 scope requested for the bearer token."),
            cfg.BoolOpt(
                "https_allow_insecure", default=False,
                help=("Whether to disable the validation of "
                      "HTTPS certificates.")),
            cfg.StrOpt(
                "https_ca_bundle", default=None,
                help=("The path to a CA_BUNDLE file or directory with "
                      "certificates of trusted CAs.")),
            cfg.IntOpt(
                "retry_count", default=5,
                help="Max. number of attempts for sending a request in "
                     "case of transient connection errors"),
            cfg.FloatOpt(
                "retry_interval", default=1,
                help=("Interval between attempts in case of transient errors "
                      "and between long-running operation polls, "
                      "expressed in seconds")),
            cfg.IntOpt(
                "http_request_timeout", default=None,
                help=("Number of seconds until network requests stop waiting "
                      "for a response")),
            cfg.IntOpt(
                "operation_timeout", default=None,
                help=("Number of seconds to wait for a long-running "
                      "operation before giving up. No limit by default.")),
            cfg.StrOpt(
                "network_api_version", default="2023-09-01",
                help="The api-version used for Microsoft.Network resources."),
            cfg.StrOpt(
                "resource_api_version", default="2021-04-01",
                help="The api-version used for resource groups."),
        ]

    def register(self):
        """Register the current options to the global ConfigOpts object."""
        group = cfg.OptGroup(
            self.group_name,
            title="Azure Resource Manager Options")
        self._config.register_group(group)
        self._config.register_opts(self._options, group=group)

    def list(self):
        """Return a list which contains all the available options."""
        return self._options
