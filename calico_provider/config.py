# Copyright (c) 2017 Tigera, Inc. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
import logging

from calico_provider.libcalico.client import Client

_log = logging.getLogger(__name__)


class Config(object):
    """
    The object every resource handler receives as meta: the datastore
    configuration and the Calico client built from it.
    """

    def __init__(self, config, client=None):
        self.config = config
        self.client = client

    def load_and_validate(self):
        """
        (Re)create the Calico client from the configuration.

        :raises DataStoreError: if the datastore configuration is unusable.
        """
        self.client = Client(self.config)
        _log.info("Created Calico client for %s datastore",
                  self.config.datastore_type)
        return self.client
