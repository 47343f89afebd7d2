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

"""Config options used by the network peering sample."""

from oslo_config import cfg

from azpeer.config import base as config_base


class SampleOptions(config_base.Options):

    def __init__(self, config):
        super(SampleOptions, self).__init__(config, group="SAMPLE")
        self._options = [
            cfg.StrOpt(
                "region", default="eastus",
                help="The region where both virtual networks are created."),
            cfg.StrOpt(
                "resource_group_prefix", default="rgNEMP",
                help="Prefix for the name of the temporary resource group."),
            cfg.BoolOpt(
                "cleanup", default=True,
                help="Whether to delete the resource group at the end."),
        ]

    def register(self):
        """Register the current options to the global ConfigOpts object."""
        group = cfg.OptGroup(self.group_name,
                             title="Network Peering Sample Options")
        self._config.register_group(group)
        self._config.register_opts(self._options, group=group)

    def list(self):
        """Return a list which contains all the available options."""
        return self._options
