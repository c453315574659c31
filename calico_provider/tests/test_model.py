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
Tests for conversion between API resources and datastore documents.
"""
import unittest

from netaddr import IPAddress, IPNetwork
from parameterized import parameterized

from calico_provider.libcalico import api
from calico_provider.libcalico.backend import model
from calico_provider.libcalico.numorstring import Protocol, Port, ASNumber


class TestRuleModel(unittest.TestCase):

    def test_rule_to_model(self):
        rule = api.Rule(
            action="pass",
            protocol=Protocol("tcp"),
            not_protocol=Protocol(17),
            icmp=api.ICMPFields(type=8, code=0),
            source=api.EntityRule(tag="web", net=IPNetwork("10.0.0.0/8"),
                                  ports=[Port(80), Port(1000, 2000)]),
            destination=api.EntityRule(not_selector="role == 'db'",
                                       not_net=IPNetwork("10.1.0.0/16"),
                                       not_ports=[Port(22)]))
        self.assertEqual(model.rule_to_model(rule), {
            "action": "next-tier",
            "protocol": "tcp",
            "!protocol": 17,
            "icmp_type": 8,
            "icmp_code": 0,
            "src_tag": "web",
            "src_net": "10.0.0.0/8",
            "src_ports": [80, "1000:2000"],
            "!dst_selector": "role == 'db'",
            "!dst_net": "10.1.0.0/16",
            "!dst_ports": [22],
        })

    def test_empty_rule(self):
        self.assertEqual(model.rule_to_model(api.Rule()), {})
        self.assertEqual(model.rule_from_model({}), api.Rule())

    def test_rule_from_model(self):
        rule = model.rule_from_model({
            "action": "next-tier",
            "protocol": "6",
            "!icmp_type": 3,
            "!icmp_code": 1,
            "dst_ports": [443, "8000:8080"],
            "!src_tag": "blocked",
        })
        self.assertEqual(rule.action, "pass")
        self.assertEqual(rule.protocol, Protocol(6))
        self.assertEqual(rule.not_icmp, api.ICMPFields(type=3, code=1))
        self.assertIsNone(rule.icmp)
        self.assertEqual(rule.destination.ports, [Port(443), Port(8000, 8080)])
        self.assertEqual(rule.source.not_tag, "blocked")

    @parameterized.expand([
        (api.Rule(action="deny", protocol=Protocol("icmp"),
                  icmp=api.ICMPFields(type=0, code=0)),),
        (api.Rule(action="allow", ip_version=6,
                  source=api.EntityRule(net=IPNetwork("fd00::/64"),
                                        selector="has(a)")),),
        (api.Rule(action="log", not_protocol=Protocol("udp"),
                  destination=api.EntityRule(not_tag="t",
                                             not_ports=[Port(1, 2)])),),
    ])
    def test_rule_round_trip(self, rule):
        self.assertEqual(model.rule_from_model(model.rule_to_model(rule)),
                         rule)


class TestConverters(unittest.TestCase):

    def test_node(self):
        converter = model.NodeConverter()
        node = api.Node(
            api.NodeMetadata(name="node1"),
            api.NodeSpec(bgp=api.NodeBGPSpec(
                as_number=ASNumber(64512),
                ipv4_address=IPAddress("10.0.0.1"))))
        key = converter.key(node.metadata)
        document = converter.to_model(node)
        self.assertEqual(key, model.NodeKey("node1"))
        self.assertEqual(document, {"ip_addr_v4": "10.0.0.1",
                                    "ip_addr_v6": None,
                                    "as_num": 64512})
        self.assertEqual(converter.from_model(key, document), node)

    def test_node_without_bgp(self):
        converter = model.NodeConverter()
        node = api.Node(api.NodeMetadata(name="node1"))
        document = converter.to_model(node)
        self.assertEqual(document, {"ip_addr_v4": None, "ip_addr_v6": None,
                                    "as_num": None})
        self.assertIsNone(
            converter.from_model(model.NodeKey("node1"), document).spec.bgp)

    def test_node_list_key(self):
        converter = model.NodeConverter()
        self.assertEqual(converter.list_key(api.NodeMetadata()),
                         model.NodeKey(None))

    @parameterized.expand([
        ("global", "", ""),
        ("node", "node1", "node1"),
    ])
    def test_bgp_peer(self, scope, node, key_node):
        converter = model.BGPPeerConverter()
        peer = api.BGPPeer(
            api.BGPPeerMetadata(scope=scope, node=node,
                                peer_ip=IPAddress("192.168.0.1")),
            api.BGPPeerSpec(as_number=ASNumber(65000)))
        key = converter.key(peer.metadata)
        self.assertEqual(key, model.BGPPeerKey(key_node,
                                               IPAddress("192.168.0.1")))
        document = converter.to_model(peer)
        self.assertEqual(document, {"ip": "192.168.0.1", "as_num": 65000})
        self.assertEqual(converter.from_model(key, document), peer)

    def test_bgp_peer_list_key(self):
        converter = model.BGPPeerConverter()
        self.assertEqual(converter.list_key(api.BGPPeerMetadata()),
                         model.BGPPeerKey(None, None))
        self.assertEqual(
            converter.list_key(api.BGPPeerMetadata(scope="global")),
            model.BGPPeerKey("", None))

    def test_ip_pool(self):
        converter = model.IPPoolConverter()
        pool = api.IPPool(
            api.IPPoolMetadata(cidr=IPNetwork("10.0.0.0/16")),
            api.IPPoolSpec(ipip=api.IPIPConfiguration(enabled=True,
                                                      mode="always"),
                           nat_outgoing=True))
        document = converter.to_model(pool)
        self.assertEqual(document, {"cidr": "10.0.0.0/16",
                                    "masquerade": True,
                                    "ipam": True,
                                    "disabled": False,
                                    "ipip": "tunl0",
                                    "ipip_mode": "always"})
        self.assertEqual(
            converter.from_model(converter.key(pool.metadata), document),
            pool)

    def test_ip_pool_ipip_disabled_not_stored(self):
        converter = model.IPPoolConverter()
        pool = api.IPPool(
            api.IPPoolMetadata(cidr=IPNetwork("10.0.0.0/16")),
            api.IPPoolSpec(ipip=api.IPIPConfiguration(enabled=False)))
        document = converter.to_model(pool)
        self.assertNotIn("ipip", document)
        self.assertIsNone(
            converter.from_model(converter.key(pool.metadata),
                                 document).spec.ipip)

    def test_policy(self):
        converter = model.PolicyConverter()
        policy = api.Policy(
            api.PolicyMetadata(name="pol1"),
            api.PolicySpec(order=100.0, selector="role == 'web'",
                           ingress_rules=[api.Rule(action="allow")],
                           egress_rules=[api.Rule(action="deny")]))
        key = converter.key(policy.metadata)
        self.assertEqual(key, model.PolicyKey("pol1", "default"))
        document = converter.to_model(policy)
        self.assertEqual(document, {"order": 100.0,
                                    "selector": "role == 'web'",
                                    "inbound_rules": [{"action": "allow"}],
                                    "outbound_rules": [{"action": "deny"}]})
        self.assertEqual(converter.from_model(key, document), policy)

    def test_profile(self):
        converter = model.ProfileConverter()
        profile = api.Profile(
            api.ProfileMetadata(name="prof1", labels={"a": "b"},
                                tags=["t1"]),
            api.ProfileSpec(ingress_rules=[api.Rule(action="allow")]))
        document = converter.to_model(profile)
        self.assertEqual(document, {
            "rules": {"inbound_rules": [{"action": "allow"}],
                      "outbound_rules": []},
            "tags": ["t1"],
            "labels": {"a": "b"},
        })
        self.assertEqual(
            converter.from_model(converter.key(profile.metadata), document),
            profile)

    def test_host_endpoint(self):
        converter = model.HostEndpointConverter()
        endpoint = api.HostEndpoint(
            api.HostEndpointMetadata(name="hep1", node="node1",
                                     labels={"role": "gw"}),
            api.HostEndpointSpec(interface_name="eth0",
                                 expected_ips=[IPAddress("fd00::1"),
                                               IPAddress("10.0.0.1")],
                                 profiles=["prof1"]))
        key = converter.key(endpoint.metadata)
        self.assertEqual(key, model.HostEndpointKey("node1", "hep1"))
        document = converter.to_model(endpoint)
        self.assertEqual(document, {"name": "eth0",
                                    "expected_ipv4_addrs": ["10.0.0.1"],
                                    "expected_ipv6_addrs": ["fd00::1"],
                                    "labels": {"role": "gw"},
                                    "profile_ids": ["prof1"]})
        # IPv4 addresses are read back first.
        result = converter.from_model(key, document)
        self.assertEqual(result.spec.expected_ips,
                         [IPAddress("10.0.0.1"), IPAddress("fd00::1")])
