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

import unittest
from unittest import mock

from azpeer import client
from azpeer.common import constant
from azpeer.common import exception
from azpeer import sample
from azpeer.tests.fake import fake_client
from azpeer.tests.fake import fake_response
from azpeer.tests import utils as test_utils

_GROUP_PATH = "/subscriptions/fake-subscription/resourcegroups/rgNEMP42"


class TestRunSample(unittest.TestCase):

    def setUp(self):
        patcher = test_utils.ConfigPatcher("subscription_id",
                                           "fake-subscription", "AZURE")
        patcher.__enter__()
        self.addCleanup(patcher.__exit__, None, None, None)

        self.provider = fake_client.FakeARMClient()
        for patcher in (mock.patch.object(client._BaseARMModel,
                                          "_get_client",
                                          return_value=self.provider),
                        mock.patch("time.sleep"),
                        mock.patch("random.randint", return_value=42)):
            patcher.start()
            self.addCleanup(patcher.stop)

    def _get_network(self, name):
        return client.VirtualNetworks.get(resource_id=name,
                                          resource_group="rgNEMP42")

    def test_run_sample(self):
        with test_utils.LogSnatcher("azpeer.sample") as logging:
            sample.run_sample()

        self.assertEqual(self.provider.requests[0],
                         (constant.PUT, _GROUP_PATH))
        self.assertIn((constant.DELETE, _GROUP_PATH), self.provider.requests)
        self.assertRaises(exception.NotFound, self._get_network, "vnet1-42")
        self.assertRaises(exception.NotFound, self._get_network, "vnet2-42")

        self.assertIn("Created a peering", logging.output)
        self.assertIn("Deleted the peering from both sides.", logging.output)
        self.assertIn("Deleted the resource group: rgNEMP42", logging.output)
        self.assertTrue(any("Access from the remote network: False" in item
                            for item in logging.output))

        # The networks were shown without peerings at the end
        self.assertTrue(logging.output[-4].endswith("\tPeerings:"))
        self.assertTrue(logging.output[-3].endswith("\tPeerings:"))

    @test_utils.ConfigPatcher("cleanup", False, "SAMPLE")
    def test_run_sample_without_cleanup(self):
        sample.run_sample()

        self.assertNotIn((constant.DELETE, _GROUP_PATH),
                         self.provider.requests)
        for name in ("vnet1-42", "vnet2-42"):
            network = self._get_network(name)
            self.assertEqual(network.peerings, [])

    def test_run_sample_without_resources(self):
        error = exception.ProviderUnavailable(details="throttled")
        self.provider.fail(constant.PUT, "resourcegroups/rgNEMP42", error)

        with test_utils.LogSnatcher("azpeer.sample") as logging:
            self.assertRaises(exception.ProviderUnavailable,
                              sample.run_sample)

        self.assertEqual(logging.output[-1],
                         "Did not create any resources in Azure. "
                         "No clean up is necessary")
        self.assertNotIn((constant.DELETE, _GROUP_PATH),
                         self.provider.requests)

    def test_run_sample_partial_link(self):
        self.provider.fail(constant.PUT,
                           "vnet2-42/virtualNetworkPeerings/peer42",
                           exception.ProviderUnavailable(details="busy"))

        self.assertRaises(exception.PartialLinkError, sample.run_sample)
        self.assertIn((constant.DELETE, _GROUP_PATH), self.provider.requests)

    @mock.patch("azpeer.client.ResourceGroups.remove")
    def test_run_sample_cleanup_failed(self, mock_remove):
        mock_remove.side_effect = exception.ServiceException("boom")

        with test_utils.LogSnatcher("azpeer.sample") as logging:
            sample.run_sample()

        mock_remove.assert_called_once_with("rgNEMP42")
        self.assertEqual(logging.output[-1],
                         "Failed to delete the resource group rgNEMP42: boom")


class TestSample(unittest.TestCase):

    def test_format_virtual_network(self):
        raw_data = fake_response.FakeResponse().virtual_networks()["value"][0]
        network = client.VirtualNetworks.from_raw_data(raw_data)
        prefix = ("/subscriptions/fake-subscription/resourceGroups/rgNEMP42/"
                  "providers/Microsoft.Network/virtualNetworks/")

        self.assertEqual(sample.format_virtual_network(network).splitlines(), [
            "Network: %svnet1-1234" % prefix,
            "\tName: vnet1-1234",
            "\tResource group: rgNEMP42",
            "\tRegion: eastus",
            "\tAddress spaces: 10.0.0.0/27",
            "\tSubnets:",
            "\t\tName: subnet1",
            "\t\tAddress prefix: 10.0.0.0/28",
            "\t\tName: subnet2",
            "\t\tAddress prefix: 10.0.0.16/28",
            "\tPeerings:",
            "\t\tName: peer5678",
            "\t\tRemote network: %svnet2-4321" % prefix,
            "\t\tPeering state: Connected",
            "\t\tAccess from the remote network: True",
            "\t\tForwarded traffic allowed: False",
            "\t\tGateway transit allowed: False",
            "\t\tUses the remote gateways: False",
        ])

    @mock.patch("azpeer.client.VirtualNetworks.commit")
    def test_create_network(self, mock_commit):
        network = sample.create_network(
            "vnet1-42", "rgNEMP42", "eastus", "10.0.0.0/27",
            [("subnet1", "10.0.0.0/28"), ("subnet2", "10.0.0.16/28")])

        self.assertIs(network, mock_commit.return_value)
        mock_commit.assert_called_once_with(wait=True)

    @mock.patch("azpeer.client.VirtualNetworks.commit")
    def test_create_invalid_network(self, mock_commit):
        self.assertRaises(exception.DataProcessingError,
                          sample.create_network, "vnet1-42", "rgNEMP42",
                          "eastus", "10.0.0.0/27",
                          [("subnet1", "10.1.0.0/28")])
        self.assertFalse(mock_commit.called)

    @mock.patch("azpeer.sample.CONFIG")
    def test_load_environment(self, mock_config):
        environment = {"CLIENT_ID": "fake-client", "TENANT_ID": "fake-tenant"}
        with mock.patch.dict("os.environ", environment, clear=True):
            sample._load_environment()

        self.assertEqual(mock_config.set_default.call_args_list, [
            mock.call("client_id", "fake-client", group="AZURE"),
            mock.call("tenant_id", "fake-tenant", group="AZURE"),
        ])

    @mock.patch("azpeer.sample.run_sample")
    @mock.patch("oslo_log.log.setup")
    @mock.patch("azpeer.sample.CONFIG")
    def _test_main(self, mock_config, mock_setup, mock_run_sample,
                   error=None):
        mock_run_sample.side_effect = error

        with test_utils.LogSnatcher("azpeer.sample") as logging:
            status = sample.main(["--config-file", "azpeer.conf"])

        mock_config.assert_called_once_with(
            ["--config-file", "azpeer.conf"], project="azpeer")
        mock_setup.assert_called_once_with(mock_config, "azpeer")
        mock_run_sample.assert_called_once_with()
        if error is None:
            self.assertEqual(status, 0)
            self.assertEqual(logging.output, [])
        else:
            self.assertEqual(status, 1)
            self.assertEqual(len(logging.output), 1)
            self.assertEqual(logging.output[0].splitlines()[0],
                             "The network peering sample failed.")

    def test_main(self):
        self._test_main()

    def test_main_failed(self):
        self._test_main(error=exception.ProviderUnavailable(details="busy"))
