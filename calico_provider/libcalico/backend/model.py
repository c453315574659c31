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
calico_provider.libcalico.backend.model
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

The datastore model: keys identifying stored objects, and the conversion
between API resources and the JSON documents the backends store.

Documents follow the Calico v1 data model used by Felix and BIRD, so a
policy written here is read by the dataplane unchanged.
"""
from collections import namedtuple

from netaddr import IPAddress

from calico_provider.libcalico import api
from calico_provider.libcalico import net
from calico_provider.libcalico.numorstring import Protocol, Port, ASNumber


DEFAULT_TIER = "default"

# The API calls it "pass"; the data model calls it "next-tier".
MODEL_ACTION_NEXT_TIER = "next-tier"

# Interface name of the IPIP tunnel device.
IPIP_TUNNEL_DEVICE = "tunl0"


# Keys.  A key with a field set to None is used as a list filter that
# matches any value for that field.

class NodeKey(namedtuple("NodeKey", ["name"])):
    pass


class BGPPeerKey(namedtuple("BGPPeerKey", ["node", "peer_ip"])):
    """
    An empty node means a global peer.
    """

    @property
    def is_global(self):
        return self.node == ""


class IPPoolKey(namedtuple("IPPoolKey", ["cidr"])):
    pass


class PolicyKey(namedtuple("PolicyKey", ["name", "tier"])):
    pass


class ProfileKey(namedtuple("ProfileKey", ["name"])):
    pass


class HostEndpointKey(namedtuple("HostEndpointKey", ["node", "name"])):
    pass


# Rules.

def _entity_to_model(entity, prefix, neg, model):
    fields = (("tag", "tag"), ("net", "net"), ("selector", "selector"),
              ("ports", "ports"))
    for attr, key in fields:
        value = getattr(entity, neg and "not_" + attr or attr)
        if not value:
            continue
        if attr == "net":
            value = str(value)
        elif attr == "ports":
            value = [port.to_model() for port in value]
        model[(neg and "!" or "") + prefix + key] = value


def _entity_from_model(model, prefix):
    entity = api.EntityRule()
    for neg in ("", "!"):
        attr_pfx = neg and "not_" or ""
        tag = model.get(neg + prefix + "tag")
        if tag:
            setattr(entity, attr_pfx + "tag", tag)
        network = model.get(neg + prefix + "net")
        if network:
            setattr(entity, attr_pfx + "net", net.parse_cidr(network))
        selector = model.get(neg + prefix + "selector")
        if selector:
            setattr(entity, attr_pfx + "selector", selector)
        ports = model.get(neg + prefix + "ports")
        if ports:
            setattr(entity, attr_pfx + "ports",
                    [Port.from_string(p) for p in ports])
    return entity


def rule_to_model(rule):
    """
    Convert an api.Rule to the data model rule dict.
    """
    model = {}
    if rule.action == api.ACTION_PASS:
        model["action"] = MODEL_ACTION_NEXT_TIER
    elif rule.action:
        model["action"] = rule.action
    if rule.ip_version is not None:
        model["ip_version"] = rule.ip_version
    if rule.protocol is not None:
        model["protocol"] = rule.protocol.value
    if rule.not_protocol is not None:
        model["!protocol"] = rule.not_protocol.value
    for neg, icmp in (("", rule.icmp), ("!", rule.not_icmp)):
        if icmp is None:
            continue
        if icmp.type is not None:
            model[neg + "icmp_type"] = icmp.type
        if icmp.code is not None:
            model[neg + "icmp_code"] = icmp.code
    for neg in (False, True):
        _entity_to_model(rule.source, "src_", neg, model)
        _entity_to_model(rule.destination, "dst_", neg, model)
    return model


def rule_from_model(model):
    """
    Convert a data model rule dict to an api.Rule.
    """
    rule = api.Rule()
    action = model.get("action", "")
    if action == MODEL_ACTION_NEXT_TIER:
        action = api.ACTION_PASS
    rule.action = action
    rule.ip_version = model.get("ip_version")
    if model.get("protocol") is not None:
        rule.protocol = Protocol.from_string(model["protocol"])
    if model.get("!protocol") is not None:
        rule.not_protocol = Protocol.from_string(model["!protocol"])
    for neg, attr in (("", "icmp"), ("!", "not_icmp")):
        icmp_type = model.get(neg + "icmp_type")
        icmp_code = model.get(neg + "icmp_code")
        if icmp_type is not None or icmp_code is not None:
            setattr(rule, attr, api.ICMPFields(type=icmp_type,
                                               code=icmp_code))
    rule.source = _entity_from_model(model, "src_")
    rule.destination = _entity_from_model(model, "dst_")
    return rule


def rules_to_model(rules):
    return [rule_to_model(rule) for rule in rules]


def rules_from_model(models):
    return [rule_from_model(model) for model in models or []]


# Resource converters.  Each converts between an API resource and a
# (key, document) pair.

class Converter(object):
    resource_class = None

    def key(self, metadata):
        """
        :return: the datastore key for fully specified metadata.
        """
        raise NotImplementedError()

    def list_key(self, metadata):
        """
        :return: a key used as a filter; unset metadata fields are None.
        """
        raise NotImplementedError()

    def to_model(self, resource):
        raise NotImplementedError()

    def from_model(self, key, document):
        raise NotImplementedError()


class NodeConverter(Converter):
    resource_class = api.Node

    def key(self, metadata):
        return NodeKey(metadata.name)

    def list_key(self, metadata):
        return NodeKey(metadata.name or None)

    def to_model(self, node):
        document = {"ip_addr_v4": None, "ip_addr_v6": None, "as_num": None}
        bgp = node.spec.bgp
        if bgp is not None:
            if bgp.ipv4_address is not None:
                document["ip_addr_v4"] = str(bgp.ipv4_address)
            if bgp.ipv6_address is not None:
                document["ip_addr_v6"] = str(bgp.ipv6_address)
            if bgp.as_number is not None:
                document["as_num"] = int(bgp.as_number)
        return document

    def from_model(self, key, document):
        node = api.Node(api.NodeMetadata(name=key.name))
        ipv4 = document.get("ip_addr_v4")
        ipv6 = document.get("ip_addr_v6")
        as_num = document.get("as_num")
        if ipv4 or ipv6 or as_num is not None:
            node.spec.bgp = api.NodeBGPSpec(
                as_number=None if as_num is None else ASNumber(as_num),
                ipv4_address=IPAddress(ipv4) if ipv4 else None,
                ipv6_address=IPAddress(ipv6) if ipv6 else None)
        return node


class BGPPeerConverter(Converter):
    resource_class = api.BGPPeer

    def key(self, metadata):
        node = metadata.node if metadata.scope == api.SCOPE_NODE else ""
        return BGPPeerKey(node, metadata.peer_ip)

    def list_key(self, metadata):
        if metadata.scope == api.SCOPE_GLOBAL:
            node = ""
        elif metadata.scope == api.SCOPE_NODE:
            node = metadata.node or None
        else:
            node = None
        return BGPPeerKey(node, metadata.peer_ip)

    def to_model(self, peer):
        return {"ip": str(peer.metadata.peer_ip),
                "as_num": int(peer.spec.as_number)}

    def from_model(self, key, document):
        metadata = api.BGPPeerMetadata(
            scope=api.SCOPE_GLOBAL if key.is_global else api.SCOPE_NODE,
            node=key.node,
            peer_ip=IPAddress(document["ip"]))
        spec = api.BGPPeerSpec(as_number=ASNumber(document["as_num"]))
        return api.BGPPeer(metadata, spec)


class IPPoolConverter(Converter):
    resource_class = api.IPPool

    def key(self, metadata):
        return IPPoolKey(metadata.cidr)

    def list_key(self, metadata):
        return IPPoolKey(metadata.cidr)

    def to_model(self, pool):
        spec = pool.spec
        document = {
            "cidr": str(pool.metadata.cidr),
            "masquerade": spec.nat_outgoing,
            "ipam": True,
            "disabled": spec.disabled,
        }
        if spec.ipip is not None and spec.ipip.enabled:
            document["ipip"] = IPIP_TUNNEL_DEVICE
            document["ipip_mode"] = spec.ipip.mode
        return document

    def from_model(self, key, document):
        metadata = api.IPPoolMetadata(cidr=net.parse_cidr(document["cidr"]))
        spec = api.IPPoolSpec(nat_outgoing=document.get("masquerade", False),
                              disabled=document.get("disabled", False))
        if document.get("ipip"):
            spec.ipip = api.IPIPConfiguration(
                enabled=True, mode=document.get("ipip_mode", ""))
        return api.IPPool(metadata, spec)


class PolicyConverter(Converter):
    resource_class = api.Policy

    def key(self, metadata):
        return PolicyKey(metadata.name, DEFAULT_TIER)

    def list_key(self, metadata):
        return PolicyKey(metadata.name or None, DEFAULT_TIER)

    def to_model(self, policy):
        spec = policy.spec
        return {
            "order": spec.order,
            "selector": spec.selector,
            "inbound_rules": rules_to_model(spec.ingress_rules),
            "outbound_rules": rules_to_model(spec.egress_rules),
        }

    def from_model(self, key, document):
        spec = api.PolicySpec(
            order=document.get("order"),
            selector=document.get("selector", ""),
            ingress_rules=rules_from_model(document.get("inbound_rules")),
            egress_rules=rules_from_model(document.get("outbound_rules")))
        return api.Policy(api.PolicyMetadata(name=key.name), spec)


class ProfileConverter(Converter):
    resource_class = api.Profile

    def key(self, metadata):
        return ProfileKey(metadata.name)

    def list_key(self, metadata):
        return ProfileKey(metadata.name or None)

    def to_model(self, profile):
        return {
            "rules": {
                "inbound_rules": rules_to_model(profile.spec.ingress_rules),
                "outbound_rules": rules_to_model(profile.spec.egress_rules),
            },
            "tags": list(profile.metadata.tags),
            "labels": dict(profile.metadata.labels),
        }

    def from_model(self, key, document):
        rules = document.get("rules") or {}
        metadata = api.ProfileMetadata(name=key.name,
                                       labels=document.get("labels"),
                                       tags=document.get("tags"))
        spec = api.ProfileSpec(
            ingress_rules=rules_from_model(rules.get("inbound_rules")),
            egress_rules=rules_from_model(rules.get("outbound_rules")))
        return api.Profile(metadata, spec)


class HostEndpointConverter(Converter):
    resource_class = api.HostEndpoint

    def key(self, metadata):
        return HostEndpointKey(metadata.node, metadata.name)

    def list_key(self, metadata):
        return HostEndpointKey(metadata.node or None, metadata.name or None)

    def to_model(self, endpoint):
        spec = endpoint.spec
        document = {
            "name": spec.interface_name,
            "expected_ipv4_addrs": [str(ip) for ip in spec.expected_ips
                                    if ip.version == 4],
            "expected_ipv6_addrs": [str(ip) for ip in spec.expected_ips
                                    if ip.version == 6],
            "labels": dict(endpoint.metadata.labels),
            "profile_ids": list(spec.profiles),
        }
        return document

    def from_model(self, key, document):
        metadata = api.HostEndpointMetadata(name=key.name, node=key.node,
                                            labels=document.get("labels"))
        expected_ips = [IPAddress(ip) for ip in
                        (document.get("expected_ipv4_addrs", []) +
                         document.get("expected_ipv6_addrs", []))]
        spec = api.HostEndpointSpec(
            interface_name=document.get("name", ""),
            expected_ips=expected_ips,
            profiles=document.get("profile_ids"))
        return api.HostEndpoint(metadata, spec)


CONVERTERS = {
    api.Node: NodeConverter(),
    api.BGPPeer: BGPPeerConverter(),
    api.IPPool: IPPoolConverter(),
    api.Policy: PolicyConverter(),
    api.Profile: ProfileConverter(),
    api.HostEndpoint: HostEndpointConverter(),
}
