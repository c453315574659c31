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
Tests for mapping rule configuration to and from API rules.
"""
import unittest

from netaddr import IPNetwork
from parameterized import parameterized

from calico_provider import helpers
from calico_provider import schema
from calico_provider.errors import ProviderError
from calico_provider.libcalico import api
from calico_provider.libcalico.numorstring import Protocol, Port


def rules_data(ingress_rules):
    resource = schema.Resource({
        "spec": schema.Schema(schema.TYPE_LIST, optional=True,
                              elem=schema.Resource({
                                  "ingress": schema.Schema(
                                      schema.TYPE_LIST, optional=True,
                                      elem=helpers.rule_schema()),
                              })),
    })
    config = resource.validate("r", {
        "spec": [{"ingress": [{"rule": ingress_rules}]}]})
    return resource.data(config)


class TestRuleMapping(unittest.TestCase):

    def test_resource_map_to_rule(self):
        rule = helpers.resource_map_to_rule({
            "action": "allow",
            "protocol": "tcp",
            "notProtocol": "17",
            "source": [{"net": "10.0.0.0/8", "notNet": "10.1.0.0/16",
                        "tag": "web", "ports": ["80", "1000:2000"]}],
            "destination": [{"selector": "role == 'db'",
                             "notSelector": "has(x)",
                             "notTag": "bad", "notPorts": ["22"]}],
        })
        self.assertEqual(rule, api.Rule(
            action="allow",
            protocol=Protocol("tcp"),
            not_protocol=Protocol(17),
            source=api.EntityRule(tag="web", net=IPNetwork("10.0.0.0/8"),
                                  not_net=IPNetwork("10.1.0.0/16"),
                                  ports=[Port(80), Port(1000, 2000)]),
            destination=api.EntityRule(selector="role == 'db'",
                                       not_selector="has(x)",
                                       not_tag="bad",
                                       not_ports=[Port(22)])))

    def test_icmp(self):
        rule = helpers.resource_map_to_rule({
            "protocol": "icmp",
            "icmp": [{"code": 0}],
            "notICMP": [{"type": 3, "code": 1}],
        })
        self.assertEqual(rule.icmp, api.ICMPFields(type=0, code=0))
        self.assertEqual(rule.not_icmp, api.ICMPFields(type=3, code=1))

    @parameterized.expand([
        ({"protocol": "bogus"},),
        ({"protocol": "tcp", "notProtocol": "999"},),
        ({"protocol": "tcp", "source": [{"net": "10.0.0.1"}]},),
        ({"protocol": "tcp", "destination": [{"notNet": "bad/net"}]},),
        ({"protocol": "tcp", "destination": [{"ports": ["http"]}]},),
    ])
    def test_invalid(self, rule_map):
        self.assertRaises(ProviderError, helpers.resource_map_to_rule,
                          rule_map)

    def test_only_first_entity_block_is_used(self):
        entity = helpers.src_dst_list_to_entity_rule([{"tag": "a"},
                                                      {"tag": "b"}])
        self.assertEqual(entity, api.EntityRule(tag="a"))

    def test_non_empty_entity_rule(self):
        self.assertFalse(helpers.non_empty_entity_rule(api.EntityRule()))
        self.assertTrue(helpers.non_empty_entity_rule(
            api.EntityRule(not_net=IPNetwork("10.0.0.0/8"))))
        self.assertTrue(helpers.non_empty_entity_rule(
            api.EntityRule(not_ports=[Port(1)])))

    def test_rules_to_map(self):
        rules = [
            api.Rule(action="deny",
                     protocol=Protocol("icmp"),
                     icmp=api.ICMPFields(type=8, code=0),
                     not_icmp=api.ICMPFields(type=3, code=1)),
            api.Rule(not_protocol=Protocol("udp"),
                     destination=api.EntityRule(
                         net=IPNetwork("10.0.0.0/8"),
                         not_ports=[Port(1, 1024)])),
        ]
        self.assertEqual(helpers.rules_to_map(rules), [
            {"action": "deny",
             "protocol": "icmp",
             "icmp": [{"type": 8, "code": 0}],
             "notICMP": [{"type": 3, "code": 1}]},
            {"notProtocol": "udp",
             "destination": [{"net": "10.0.0.0/8",
                              "notPorts": ["1:1024"]}]},
        ])

    def test_rules_to_block(self):
        self.assertEqual(helpers.rules_to_block([]), [])
        self.assertEqual(helpers.rules_to_block([api.Rule(action="allow")]),
                         [{"rule": [{"action": "allow"}]}])


class TestResourceData(unittest.TestCase):

    def test_d_to_rules(self):
        d = rules_data([
            {"action": "allow", "protocol": "tcp",
             "destination": {"ports": ["443"]}},
            {"action": "deny", "protocol": "udp"},
        ])
        rules = helpers.d_to_rules(d, "spec.0.ingress.0.rule")
        self.assertEqual(rules, [
            api.Rule(action="allow", protocol=Protocol("tcp"),
                     destination=api.EntityRule(ports=[Port(443)])),
            api.Rule(action="deny", protocol=Protocol("udp")),
        ])
        self.assertEqual(helpers.d_to_rules(d, "spec.0.egress.0.rule"), [])

    def test_rules_round_trip_through_config(self):
        rule_maps = [
            {"action": "allow", "protocol": "tcp",
             "source": [{"selector": "a == 'b'", "ports": ["80"]}]},
            {"action": "deny", "protocol": "icmp",
             "icmp": [{"type": 8, "code": 0}]},
        ]
        d = rules_data(rule_maps)
        rules = helpers.d_to_rules(d, "spec.0.ingress.0.rule")
        self.assertEqual(helpers.rules_to_map(rules), rule_maps)

    def test_d_to_cidr(self):
        resource = schema.Resource({
            "cidr": schema.Schema(schema.TYPE_STRING, optional=True)})
        d = resource.data({"cidr": "10.0.0.0/16"})
        self.assertEqual(helpers.d_to_cidr(d, "cidr"),
                         IPNetwork("10.0.0.0/16"))
        d = resource.data({"cidr": "10.0.0.0"})
        with self.assertRaises(ProviderError) as cm:
            helpers.d_to_cidr(d, "cidr")
        self.assertTrue(str(cm.exception).startswith(
            "ERROR: couldn't parse CIDR: "))


class TestCanonical(unittest.TestCase):

    @parameterized.expand([
        (helpers.canonical_cidr, "10.1.2.3/16", "10.1.0.0/16"),
        (helpers.canonical_cidr, "FD00::1/64", "fd00::/64"),
        (helpers.canonical_cidr, "10.0.0.1", "10.0.0.1"),
        (helpers.canonical_ip, "FD00::0:1", "fd00::1"),
        (helpers.canonical_ip, "10.0.0.300", "10.0.0.300"),
        (helpers.canonical_protocol, "TCP", "tcp"),
        (helpers.canonical_protocol, "17", "17"),
        (helpers.canonical_protocol, "bogus", "bogus"),
        (helpers.canonical_port, "080", "80"),
        (helpers.canonical_port, "1:2", "1:2"),
        (helpers.canonical_port, "2:1", "2:1"),
        (helpers.canonical_asn, "1.10", "65546"),
        (helpers.canonical_asn, "", ""),
    ])
    def test_canonical(self, state_func, value, expected):
        self.assertEqual(state_func(value), expected)
