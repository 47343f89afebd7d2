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

"""Factory for all the available config options."""

import importlib

_OPT_PATHS = (
    "azpeer.config.client.AzureOptions",
    "azpeer.config.sample.SampleOptions",
)


def _load_class(class_path):
    """Load the module and return the required class."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def get_options():
    """Return a list of all the available `Options` subclasses."""
    return [_load_class(class_path) for class_path in _OPT_PATHS]
