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
"""terraform-provider-calico

Manage Calico resources declared in a configuration file.  The file holds
a provider block with the datastore settings and a resource block with
the Calico resources, keyed by type and name.

Usage:
  terraform-provider-calico (plan|apply|refresh|destroy) <CONFIG> [--state=<STATE>] [--log-level=<LEVEL>] [--log-file=<FILE>]
  terraform-provider-calico show [--state=<STATE>]
  terraform-provider-calico schema
  terraform-provider-calico -h | --help

Options:
  -h --help            Show this screen.
  --state=<STATE>      State file [default: terraform.tfstate]
  --log-level=<LEVEL>  Log level, overriding TF_LOG.
  --log-file=<FILE>    Log file, overriding TF_LOG_PATH.
"""
import json
import logging
import sys
import textwrap

from docopt import docopt
from prettytable import PrettyTable
import yaml

from calico_provider import log
from calico_provider.errors import ProviderError
from calico_provider.libcalico.errors import DataStoreError, ValidationError
from calico_provider.provider import provider
from calico_provider.state import State, address

_log = logging.getLogger(__name__)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_REPLACE = "replace"
ACTION_DELETE = "delete"

# Resources are created in this order and deleted in the reverse.
RESOURCE_ORDER = [
    "calico_node",
    "calico_ippool",
    "calico_bgppeer",
    "calico_profile",
    "calico_policy",
    "calico_hostendpoint",
]


def print_paragraph(msg, file=sys.stdout):
    """
    Print a fixed width (80 chars) paragraph of text.
    :param msg: The msg to print.
    :param file: The text stream to write to (default sys.stdout)
    :return: None.
    """
    print("\n".join(textwrap.wrap(msg, width=80)), file=file)
    print("", file=file)


def load_config(path):
    """
    Load a YAML (or JSON) configuration file.

    :return: tuple of (provider config dict, {address: (type, name, raw)}).
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (IOError, yaml.YAMLError) as e:
        raise ProviderError("Could not load configuration %s: %s" % (path, e))
    if not isinstance(data, dict):
        raise ProviderError("Configuration %s must be a map" % path)
    unknown = set(data) - set(["provider", "resource"])
    if unknown:
        raise ProviderError("Unknown configuration blocks: %s" %
                            ", ".join(sorted(unknown)))

    resources = {}
    for type_name, named in (data.get("resource") or {}).items():
        for name, raw in (named or {}).items():
            resources[address(type_name, name)] = (type_name, name,
                                                   raw or {})
    return data.get("provider") or {}, resources


def significant(value):
    """
    Strip zero values (empty strings and collections, False, 0) so that
    an unset field and a field set to its zero value compare equal.
    """
    if isinstance(value, dict):
        result = {}
        for k, v in value.items():
            v = significant(v)
            if v is not None:
                result[k] = v
        return result or None
    if isinstance(value, list):
        result = [significant(v) for v in value]
        if all(v is None for v in result):
            return None
        return result
    if value in ("", 0, False):
        return None
    return value


def _order(resource_address):
    type_name = resource_address.split(".", 1)[0]
    if type_name in RESOURCE_ORDER:
        return RESOURCE_ORDER.index(type_name), resource_address
    return len(RESOURCE_ORDER), resource_address


class Runner(object):
    """
    Drives the resource handlers to bring the datastore in line with the
    configuration, recording what it manages in the state.
    """

    def __init__(self, provider, state, provider_config=None,
                 resources=None):
        self.provider = provider
        self.state = state
        self.provider_config = provider_config or {}
        self.resources = resources or {}
        self.meta = None

    def configure(self):
        if self.meta is None:
            self.meta = self.provider.configure(self.provider_config)
        return self.meta

    def _validated(self):
        """
        :return: {address: (type, name, normalized config)}.
        :raises SchemaValidationError: on the first invalid resource.
        """
        configs = {}
        for resource_address, (type_name, name, raw) in \
                self.resources.items():
            resource = self.provider.resource(type_name)
            configs[resource_address] = (
                type_name, name, resource.validate(resource_address, raw))
        return configs

    def plan(self):
        """
        :return: list of (action, address) in the order to apply them.
        """
        configs = self._validated()
        deletes = []
        changes = []
        for resource_address in self.state.addresses():
            if resource_address not in configs:
                deletes.append((ACTION_DELETE, resource_address))
        for resource_address, (type_name, _, config) in configs.items():
            current = self.state.get(resource_address)
            if current is None:
                changes.append((ACTION_CREATE, resource_address))
                continue
            action = self._diff(type_name, config, current["attributes"])
            if action is not None:
                changes.append((action, resource_address))
        deletes.sort(key=lambda c: _order(c[1]), reverse=True)
        changes.sort(key=lambda c: _order(c[1]))
        return deletes + changes

    def _diff(self, type_name, config, attributes):
        resource = self.provider.resource(type_name)
        action = None
        for key, field in resource.schema.items():
            if significant(config.get(key)) == significant(
                    attributes.get(key)):
                continue
            _log.debug("%s changed: %r -> %r", key, attributes.get(key),
                       config.get(key))
            if field.force_new:
                return ACTION_REPLACE
            action = ACTION_UPDATE
        return action

    def refresh(self):
        """
        Re-read every resource in the state.  Resources that no longer
        exist are dropped.
        """
        meta = self.configure()
        for resource_address in self.state.addresses():
            entry = self.state.get(resource_address)
            resource = self.provider.resource(entry["type"])
            d = resource.data(entry["attributes"], entry["id"])
            resource.read(d, meta)
            if not d.id():
                _log.info("%s no longer exists", resource_address)
                self.state.remove(resource_address)
            else:
                self.state.put(entry["type"], entry["name"], d.id(),
                               d.state())
        self.state.save()

    def _create(self, type_name, name, config, meta):
        resource = self.provider.resource(type_name)
        d = resource.data(config)
        resource.create(d, meta)
        if d.id():
            self.state.put(type_name, name, d.id(), d.state())

    def _delete(self, resource_address, meta):
        entry = self.state.get(resource_address)
        resource = self.provider.resource(entry["type"])
        d = resource.data(entry["attributes"], entry["id"])
        resource.delete(d, meta)
        self.state.remove(resource_address)

    def _update(self, type_name, name, config, meta):
        resource = self.provider.resource(type_name)
        entry = self.state.get(address(type_name, name))
        d = resource.data(config, entry["id"])
        resource.update(d, meta)
        if not d.id():
            # Gone from the datastore; it is created on the next apply.
            self.state.remove(address(type_name, name))
        else:
            self.state.put(type_name, name, d.id(), d.state())

    def apply(self):
        """
        Refresh, plan and apply.

        :return: the plan that was applied.
        """
        self.refresh()
        meta = self.configure()
        configs = self._validated()
        changes = self.plan()
        for action, resource_address in changes:
            _log.info("%s %s", action, resource_address)
            if action == ACTION_DELETE:
                self._delete(resource_address, meta)
            else:
                type_name, name, config = configs[resource_address]
                if action == ACTION_CREATE:
                    self._create(type_name, name, config, meta)
                elif action == ACTION_REPLACE:
                    self._delete(resource_address, meta)
                    self._create(type_name, name, config, meta)
                else:
                    self._update(type_name, name, config, meta)
            self.state.save()
        return changes

    def destroy(self):
        """
        Delete every resource in the state.

        :return: list of deleted addresses.
        """
        meta = self.configure()
        deleted = sorted(self.state.addresses(), key=_order, reverse=True)
        for resource_address in deleted:
            _log.info("delete %s", resource_address)
            self._delete(resource_address, meta)
            self.state.save()
        return deleted


def print_changes(changes):
    if not changes:
        print("No changes.")
        return
    x = PrettyTable(["Action", "Resource"])
    for action, resource_address in changes:
        x.add_row([action, resource_address])
    print(x.get_string())


def print_state(state):
    x = PrettyTable(["Resource", "ID"])
    for resource_address in state.addresses():
        x.add_row([resource_address, state.get(resource_address)["id"]])
    print(x.get_string(sortby="Resource"))


def main(argv=None):
    arguments = docopt(__doc__, argv=argv)

    log.default_logging()
    try:
        log.logging_from_env(arguments.get("--log-level"),
                             arguments.get("--log-file"))
    except ValueError as e:
        print_paragraph(str(e), file=sys.stderr)
        return 1

    calico = provider()
    if arguments["schema"]:
        print(json.dumps(calico.describe(), indent=2, sort_keys=True))
        return 0

    try:
        state = State.load(arguments["--state"])
        if arguments["show"]:
            print_state(state)
            return 0

        provider_config, resources = load_config(arguments["<CONFIG>"])
        runner = Runner(calico, state, provider_config, resources)
        if arguments["plan"]:
            print_changes(runner.plan())
        elif arguments["apply"]:
            print_changes(runner.apply())
        elif arguments["refresh"]:
            runner.refresh()
            print_state(state)
        elif arguments["destroy"]:
            print_changes([(ACTION_DELETE, a) for a in runner.destroy()])
    except (ProviderError, DataStoreError, ValidationError) as e:
        _log.error("Command failed: %s", e)
        print_paragraph(str(e), file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
