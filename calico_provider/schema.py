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
calico_provider.schema
~~~~~~~~~~~~~~~~~~~~~~

Declarative schemas for provider and resource configuration, and the
ResourceData record the resource handlers read from and write to.

Nested blocks are lists of maps, so a field inside a block is addressed
with a dotted path such as "spec.0.bgp.0.asNumber".  "path.#" gives the
length of a list.
"""
import copy
import logging
import os

from calico_provider.errors import SchemaValidationError, ProviderError

_log = logging.getLogger(__name__)

TYPE_BOOL = "bool"
TYPE_INT = "int"
TYPE_FLOAT = "float"
TYPE_STRING = "string"
TYPE_LIST = "list"
TYPE_MAP = "map"

ZERO_VALUES = {
    TYPE_BOOL: False,
    TYPE_INT: 0,
    TYPE_FLOAT: 0.0,
    TYPE_STRING: "",
}

TRUE_STRINGS = ("true", "1")
FALSE_STRINGS = ("false", "0")


def env_default_func(name, default):
    """
    :return: a function returning the environment variable, or the default
    if the variable is not set.
    """
    def default_func():
        return os.environ.get(name, default)
    return default_func


class Schema(object):
    """
    Describes one field.

    :param type: one of the TYPE_* constants.
    :param elem: for lists, a Resource (nested block) or a Schema
    describing the elements.  Maps always hold strings.
    :param default_func: called for a default when the field is unset.
    :param force_new: a change to this field needs the resource replaced.
    :param state_func: maps a configured value to the canonical form the
    datastore hands back, so configuration and read-back state compare
    equal.  Values it cannot interpret are returned unchanged.
    """

    def __init__(self, type, required=False, optional=False, default=None,
                 default_func=None, elem=None, force_new=False,
                 state_func=None, description=""):
        self.type = type
        self.required = required
        self.optional = optional
        self.default = default
        self.default_func = default_func
        self.elem = elem
        self.force_new = force_new
        self.state_func = state_func
        self.description = description

    def zero_value(self):
        if self.type == TYPE_LIST:
            return []
        elif self.type == TYPE_MAP:
            return {}
        return ZERO_VALUES[self.type]

    def default_value(self):
        if self.default is not None:
            return self.default
        if self.default_func is not None:
            return self.default_func()
        return None

    def describe(self):
        """
        :return: JSON friendly description of the field.
        """
        description = {"type": self.type}
        for flag in ("required", "optional", "force_new"):
            if getattr(self, flag):
                description[flag] = True
        if self.default is not None:
            description["default"] = self.default
        if self.description:
            description["description"] = self.description
        if isinstance(self.elem, Resource):
            description["block"] = self.elem.describe()
        elif isinstance(self.elem, Schema):
            description["elem"] = self.elem.describe()
        return description


def _coerce_primitive(field_type, value, path, issues):
    if field_type == TYPE_STRING:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int, float)):
            return str(value)
    elif field_type == TYPE_INT:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                pass
    elif field_type == TYPE_FLOAT:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
    elif field_type == TYPE_BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in TRUE_STRINGS:
            return True
        if isinstance(value, str) and value.lower() in FALSE_STRINGS:
            return False
    issues.append("%s: expected %s, got %r" % (path, field_type, value))
    return None


def _coerce(schema, value, path, issues):
    """
    Check a configured value against its schema, converting it to the
    canonical form: primitives of the right Python type, nested blocks as
    lists of dicts.
    """
    if schema.type == TYPE_MAP:
        if not isinstance(value, dict):
            issues.append("%s: expected map, got %r" % (path, value))
            return None
        return dict((str(k), _coerce_primitive(TYPE_STRING, v,
                                               "%s.%s" % (path, k), issues))
                    for k, v in value.items())
    if schema.type == TYPE_LIST:
        if isinstance(value, dict) and isinstance(schema.elem, Resource):
            # A single block written as a map.
            value = [value]
        if not isinstance(value, list):
            issues.append("%s: expected list, got %r" % (path, value))
            return None
        result = []
        for index, item in enumerate(value):
            item_path = "%s.%d" % (path, index)
            if isinstance(schema.elem, Resource):
                if item is None:
                    item = {}
                if not isinstance(item, dict):
                    issues.append("%s: expected block, got %r" %
                                  (item_path, item))
                    continue
                result.append(schema.elem.normalize(item, item_path, issues))
            else:
                elem = schema.elem or Schema(TYPE_STRING)
                result.append(_coerce(elem, item, item_path, issues))
        return result
    value = _coerce_primitive(schema.type, value, path, issues)
    if value is not None and schema.state_func is not None:
        value = schema.state_func(value)
    return value


class Resource(object):
    """
    A resource type: its schema and its Create/Read/Update/Delete
    handlers.  Each handler is called as handler(d, meta), where d is the
    ResourceData and meta the object returned by the provider's configure
    function.

    A Resource with no handlers is a nested block.
    """

    def __init__(self, schema, create=None, read=None, update=None,
                 delete=None):
        self.schema = schema
        self.create = create
        self.read = read
        self.update = update
        self.delete = delete

    def normalize(self, raw, path="", issues=None):
        """
        Check raw configuration against the schema.

        :param raw: dict of configuration.
        :param path: dotted path of this block, for messages.
        :param issues: list to append problems to.
        :return: the normalized configuration.
        """
        if issues is None:
            issues = []
        prefix = path and path + "." or ""
        result = {}
        for key in sorted(set(raw) - set(self.schema)):
            issues.append("%s%s: invalid or unknown key" % (prefix, key))
        for key, field in sorted(self.schema.items()):
            value = raw.get(key)
            if value is None:
                value = field.default_value()
                if value is None:
                    if field.required:
                        issues.append("%s%s: required field is not set" %
                                      (prefix, key))
                    continue
            result[key] = _coerce(field, value, prefix + key, issues)
        return result

    def validate(self, name, raw):
        """
        :return: the normalized configuration.
        :raises SchemaValidationError: listing every problem found.
        """
        issues = []
        config = self.normalize(raw, "", issues)
        if issues:
            raise SchemaValidationError(name, issues)
        return config

    def data(self, config=None, id=""):
        """
        :return: a ResourceData over normalized configuration.
        """
        return ResourceData(self.schema, config, id)

    def describe(self):
        return dict((key, field.describe())
                    for key, field in sorted(self.schema.items()))


class ResourceData(object):
    """
    The configuration record a handler works on.

    Values set with set() take precedence over the configuration, so a
    Read handler's output is what later get() calls see.
    """

    def __init__(self, schema, config=None, id=""):
        self.schema = schema
        self._config = copy.deepcopy(config or {})
        self._set = {}
        self._id = id

    def id(self):
        return self._id

    def set_id(self, id):
        _log.debug("Setting resource ID to %r", id)
        self._id = id

    def _field_schema(self, parts):
        """
        :return: the Schema for a path, given as a list of segments.
        """
        schema = self.schema
        field = None
        for part in parts:
            if field is None:
                field = schema.get(part)
            elif part.isdigit() and field.type == TYPE_LIST:
                if isinstance(field.elem, Resource):
                    schema = field.elem.schema
                    field = None
                    continue
                field = field.elem or Schema(TYPE_STRING)
            elif field.type == TYPE_MAP:
                field = Schema(TYPE_STRING)
            else:
                field = None
            if field is None:
                raise ProviderError("unknown field path %r" %
                                    ".".join(parts))
        if field is None:
            # The path names a whole block.
            return Schema(TYPE_MAP)
        return field

    def _lookup(self, parts):
        """
        :return: (found, value) for a path.
        """
        if parts[0] in self._set:
            value = self._set[parts[0]]
        elif parts[0] in self._config:
            value = self._config[parts[0]]
        else:
            return False, None
        for part in parts[1:]:
            if isinstance(value, list):
                try:
                    value = value[int(part)]
                except (ValueError, IndexError):
                    return False, None
            elif isinstance(value, dict):
                if part not in value:
                    return False, None
                value = value[part]
            else:
                return False, None
            if value is None:
                return False, None
        return True, value

    def get(self, path):
        """
        :param path: dotted path, e.g. "spec.0.selector" or "spec.#".
        :return: the value, or the zero value of the field's type if unset.
        """
        parts = path.split(".")
        if parts[-1] == "#":
            found, value = self._lookup(parts[:-1])
            return len(value) if found and value is not None else 0
        field = self._field_schema(parts)
        found, value = self._lookup(parts)
        if not found or value is None:
            return field.zero_value()
        return value

    def get_ok(self, path):
        """
        :return: tuple of (value, ok) where ok is True if the value is set
        and not the zero value for its type.
        """
        value = self.get(path)
        if path.endswith(".#"):
            return value, value != 0
        field = self._field_schema(path.split("."))
        return value, value != field.zero_value()

    def set(self, key, value):
        """
        Set a top level field.  Nested blocks are given as lists of dicts.
        """
        if key not in self.schema:
            raise ProviderError("invalid key %r for set" % key)
        issues = []
        value = _coerce(self.schema[key], value, key, issues)
        if issues:
            raise SchemaValidationError(key, issues)
        self._set[key] = value

    def state(self):
        """
        :return: dict of the current value of every field that has one.
        """
        state = {}
        for key in sorted(self.schema):
            found, value = self._lookup([key])
            if found:
                state[key] = copy.deepcopy(value)
        return state


class Provider(object):
    """
    The provider: its own configuration schema, the resource types it
    serves, and the configure hook that builds the client every handler
    receives as meta.
    """

    def __init__(self, schema, resources_map, configure_func):
        self.schema = schema
        self.resources_map = resources_map
        self.configure_func = configure_func
        self.meta = None

    def configure(self, raw):
        provider = Resource(self.schema)
        config = provider.validate("provider", raw or {})
        self.meta = self.configure_func(provider.data(config))
        return self.meta

    def resource(self, type_name):
        try:
            return self.resources_map[type_name]
        except KeyError:
            raise ProviderError("unknown resource type %r" % type_name)

    def describe(self):
        return {
            "provider": Resource(self.schema).describe(),
            "resources": dict((name, resource.describe()) for name, resource
                              in sorted(self.resources_map.items())),
        }
