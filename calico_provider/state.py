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
"""
calico_provider.state
~~~~~~~~~~~~~~~~~~~~~

The state file: the resources under management, keyed by address
("<type>.<name>"), with the ID and attributes last read for each.
"""
import json
import logging
import os

from calico_provider.errors import ProviderError

_log = logging.getLogger(__name__)

STATE_VERSION = 1


def address(type_name, name):
    return "%s.%s" % (type_name, name)


class State(object):

    def __init__(self, path, resources=None):
        self.path = path
        self.resources = resources or {}

    @classmethod
    def load(cls, path):
        """
        Load the state file.  A missing file is an empty state.

        :raises ProviderError: if the file cannot be read or parsed.
        """
        if not os.path.exists(path):
            _log.info("No state at %s, starting empty", path)
            return cls(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except (IOError, ValueError) as e:
            raise ProviderError("Could not read state file %s: %s" %
                                (path, e))
        if data.get("version") != STATE_VERSION:
            raise ProviderError("Unsupported state file version %r in %s" %
                                (data.get("version"), path))
        return cls(path, data.get("resources", {}))

    def save(self):
        """
        Write the state file, replacing the old one atomically.
        """
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w") as f:
            json.dump({"version": STATE_VERSION,
                       "resources": self.resources},
                      f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)
        _log.debug("Saved %d resources to %s", len(self.resources),
                   self.path)

    def get(self, resource_address):
        return self.resources.get(resource_address)

    def put(self, type_name, name, id, attributes):
        self.resources[address(type_name, name)] = {
            "type": type_name,
            "name": name,
            "id": id,
            "attributes": attributes,
        }

    def remove(self, resource_address):
        self.resources.pop(resource_address, None)

    def addresses(self):
        return sorted(self.resources)
