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
Tests for the configuration schema and ResourceData.
"""
import os
import unittest

from mock import patch
from parameterized import parameterized

from calico_provider import schema
from calico_provider.errors import ProviderError, SchemaValidationError


def example_resource():
    block = schema.Resource({
        "enabled": schema.Schema(schema.TYPE_BOOL, optional=True),
        "count": schema.Schema(schema.TYPE_INT, required=True),
    })
    return schema.Resource({
        "name": schema.Schema(schema.TYPE_STRING, required=True,
                              force_new=True),
        "weight": schema.Schema(schema.TYPE_FLOAT, optional=True),
        "mode": schema.Schema(schema.TYPE_STRING, optional=True,
                              default="auto"),
        "labels": schema.Schema(schema.TYPE_MAP, optional=True),
        "items": schema.Schema(schema.TYPE_LIST, optional=True,
                               elem=schema.Schema(schema.TYPE_STRING)),
        "block": schema.Schema(schema.TYPE_LIST, optional=True, elem=block),
    })


class TestNormalize(unittest.TestCase):

    def test_valid(self):
        config = example_resource().validate("r", {
            "name": "n1",
            "weight": "1.5",
            "labels": {"a": 1},
            "items": ["x", 2],
            "block": {"count": "3", "enabled": "true"},
        })
        self.assertEqual(config, {
            "name": "n1",
            "weight": 1.5,
            "mode": "auto",
            "labels": {"a": "1"},
            "items": ["x", "2"],
            "block": [{"count": 3, "enabled": True}],
        })

    def test_none_is_unset(self):
        config = example_resource().validate("r", {"name": "n1",
                                                   "weight": None})
        self.assertNotIn("weight", config)

    def test_empty_block(self):
        issues = []
        example_resource().normalize({"name": "n", "block": [None]}, "",
                                     issues)
        self.assertEqual(issues, ["block.0.count: required field is not set"])

    def test_all_issues_reported(self):
        with self.assertRaises(SchemaValidationError) as cm:
            example_resource().validate("calico_x.r", {
                "weight": "heavy",
                "bogus": 1,
                "block": [{"count": 1, "extra": True}],
            })
        self.assertEqual(cm.exception.issues, [
            "bogus: invalid or unknown key",
            "block.0.extra: invalid or unknown key",
            "name: required field is not set",
            "weight: expected float, got 'heavy'",
        ])
        self.assertTrue(str(cm.exception).startswith("calico_x.r: "))

    @parameterized.expand([
        (schema.TYPE_BOOL, "yes"),
        (schema.TYPE_BOOL, 1),
        (schema.TYPE_INT, "1.5"),
        (schema.TYPE_INT, True),
        (schema.TYPE_STRING, ["a"]),
    ])
    def test_bad_primitive(self, field_type, value):
        resource = schema.Resource({
            "f": schema.Schema(field_type, optional=True)})
        self.assertRaises(SchemaValidationError, resource.validate, "r",
                          {"f": value})

    def test_env_default(self):
        resource = schema.Resource({"f": schema.Schema(
            schema.TYPE_STRING, optional=True,
            default_func=schema.env_default_func("SCHEMA_TEST_VAR", "dflt"))})
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(resource.validate("r", {}), {"f": "dflt"})
        with patch.dict(os.environ, {"SCHEMA_TEST_VAR": "env"}):
            self.assertEqual(resource.validate("r", {}), {"f": "env"})
        self.assertEqual(resource.validate("r", {"f": "set"}), {"f": "set"})

    def test_state_func(self):
        resource = schema.Resource({
            "f": schema.Schema(schema.TYPE_STRING, optional=True,
                               state_func=str.lower),
            "l": schema.Schema(schema.TYPE_LIST, optional=True,
                               elem=schema.Schema(schema.TYPE_STRING,
                                                  state_func=str.lower)),
        })
        self.assertEqual(resource.validate("r", {"f": "TCP", "l": ["A", 1]}),
                         {"f": "tcp", "l": ["a", "1"]})
        d = resource.data()
        d.set("f", "UDP")
        self.assertEqual(d.get("f"), "udp")


class TestResourceData(unittest.TestCase):

    def setUp(self):
        self.resource = example_resource()
        self.d = self.resource.data({
            "name": "n1",
            "labels": {"a": "b"},
            "items": ["x", "y"],
            "block": [{"count": 2}],
        }, "id1")

    def test_get(self):
        self.assertEqual(self.d.get("name"), "n1")
        self.assertEqual(self.d.get("items.1"), "y")
        self.assertEqual(self.d.get("items.#"), 2)
        self.assertEqual(self.d.get("labels.a"), "b")
        self.assertEqual(self.d.get("block.0.count"), 2)
        self.assertEqual(self.d.get("block.0"), {"count": 2})

    def test_get_zero_values(self):
        self.assertEqual(self.d.get("weight"), 0.0)
        self.assertEqual(self.d.get("mode"), "")
        self.assertEqual(self.d.get("block.0.enabled"), False)
        self.assertEqual(self.d.get("block.1.count"), 0)
        self.assertEqual(self.d.get("labels.missing"), "")
        self.assertEqual(self.d.get("missing.#"), 0)

    def test_get_ok(self):
        self.assertEqual(self.d.get_ok("name"), ("n1", True))
        self.assertEqual(self.d.get_ok("weight"), (0.0, False))
        self.assertEqual(self.d.get_ok("items.#"), (2, True))
        self.assertEqual(self.d.get_ok("block.0.enabled"), (False, False))

    def test_unknown_path(self):
        self.assertRaises(ProviderError, self.d.get, "nope")
        self.assertRaises(ProviderError, self.d.get, "block.0.nope")
        self.assertRaises(ProviderError, self.d.get, "name.0")

    def test_set_overrides_config(self):
        self.d.set("name", "n2")
        self.d.set("block", [{"count": "5", "enabled": True}])
        self.assertEqual(self.d.get("name"), "n2")
        self.assertEqual(self.d.get("block.0.count"), 5)
        self.assertEqual(self.d.state()["block"],
                         [{"count": 5, "enabled": True}])

    def test_set_invalid(self):
        self.assertRaises(ProviderError, self.d.set, "nope", 1)
        self.assertRaises(SchemaValidationError, self.d.set, "weight", "x")

    def test_id(self):
        self.assertEqual(self.d.id(), "id1")
        self.d.set_id("")
        self.assertEqual(self.d.id(), "")

    def test_state_is_a_copy(self):
        state = self.d.state()
        state["items"].append("z")
        self.assertEqual(self.d.get("items.#"), 2)
        self.assertNotIn("weight", state)

    def test_config_not_modified(self):
        config = {"name": "n1"}
        d = self.resource.data(config)
        d.set("name", "other")
        self.assertEqual(config, {"name": "n1"})


class TestProvider(unittest.TestCase):

    def setUp(self):
        self.configure = lambda d: {"endpoint": d.get("endpoint")}
        self.resource = example_resource()
        self.provider = schema.Provider(
            {"endpoint": schema.Schema(schema.TYPE_STRING, required=True)},
            {"example": self.resource},
            self.configure)

    def test_configure(self):
        meta = self.provider.configure({"endpoint": "http://x"})
        self.assertEqual(meta, {"endpoint": "http://x"})
        self.assertEqual(self.provider.meta, meta)

    def test_configure_invalid(self):
        self.assertRaises(SchemaValidationError, self.provider.configure, {})

    def test_resource(self):
        self.assertIs(self.provider.resource("example"), self.resource)
        self.assertRaises(ProviderError, self.provider.resource, "other")

    def test_describe(self):
        description = self.provider.describe()
        self.assertEqual(description["provider"],
                         {"endpoint": {"type": "string", "required": True}})
        example = description["resources"]["example"]
        self.assertEqual(example["name"], {"type": "string",
                                           "required": True,
                                           "force_new": True})
        self.assertEqual(example["mode"]["default"], "auto")
        self.assertEqual(example["items"]["elem"], {"type": "string"})
        self.assertEqual(example["block"]["block"]["count"],
                         {"type": "int", "required": True})
