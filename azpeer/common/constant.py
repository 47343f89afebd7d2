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

"""Shared constants across the azpeer project."""

GET = "GET"
POST = "POST"
PUT = "PUT"
PATCH = "PATCH"
DELETE = "DELETE"

MANAGEMENT_SCOPE = "https://management.azure.com/.default"

# Provisioning states
ACCEPTED = "Accepted"
CANCELED = "Canceled"
CREATING = "Creating"
DELETING = "Deleting"
FAILED = "Failed"
SUCCEEDED = "Succeeded"
UPDATING = "Updating"

# Virtual network peering states
INITIATED = "Initiated"
CONNECTED = "Connected"
DISCONNECTED = "Disconnected"

# Virtual network peering sync levels
FULLY_IN_SYNC = "FullyInSync"
LOCAL_NOT_IN_SYNC = "LocalNotInSync"
REMOTE_NOT_IN_SYNC = "RemoteNotInSync"
LOCAL_AND_REMOTE_NOT_IN_SYNC = "LocalAndRemoteNotInSync"

# Status codes which mark a transient failure of the provider
TRANSIENT_STATUS_CODES = (429, 500, 502, 503, 504)
