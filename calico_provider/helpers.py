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
calico_provider.helpers
~~~~~~~~~~~~~~~~~~~~~~~

Mapping between the rule blocks of policy and profile configuration and
the Calico API Rule, EntityRule and ICMPFields types, plus the schema
builders those blocks share.
"""
import logging

from calico_provider import schema
from calico_provider.errors import ProviderError
from calico_provider.libcalico import api
from calico_provider.libcalico import net
from calico_provider.libcalico.errors import ParseError
from calico_provider.libcalico.numorstring import Protocol, Port, ASNumber

_log = logging.getLogger(__name__)


def _canonical(parse):
    """
    :return: a schema state_func that renders a value the way it reads back
    from the datastore.  Values that do not parse are left for the handlers
    to reject.
    """
    def state_func(value):
        try:
            return str(parse(value))
        except ParseError:
            return value
    return state_func


canonical_cidr = _canonical(net.parse_cidr)
canonical_ip = _canonical(net.parse_ip)
canonical_protocol = _canonical(Protocol.from_string)
canonical_port = _canonical(Port.from_string)
canonical_asn = _canonical(ASNumber.from_string)


def get_entity_rule_map(entity_rule):
    """
    Read an EntityRule into a config map, including only the fields that
    are set.

    :param api.EntityRule entity_rule: the entity rule.
    :return: dict.
    """
    entity_map = {}
    if entity_rule.tag:
        entity_map["tag"] = entity_rule.tag
    if entity_rule.net is not None:
        entity_map["net"] = str(entity_rule.net)
    if entity_rule.selector:
        entity_map["selector"] = entity_rule.selector
    if entity_rule.ports:
        entity_map["ports"] = [str(port) for port in entity_rule.ports]
    if entity_rule.not_tag:
        entity_map["notTag"] = entity_rule.not_tag
    if entity_rule.not_net is not None:
        entity_map["notNet"] = str(entity_rule.not_net)
    if entity_rule.not_selector:
        entity_map["notSelector"] = entity_rule.not_selector
    if entity_rule.not_ports:
        entity_map["notPorts"] = [str(port) for port in entity_rule.not_ports]
    return entity_map


def _icmp_from_list(icmp_list):
    if not icmp_list:
        return None
    icmp_map = icmp_list[0] or {}
    # An unset type reads as zero, as it does for any unset int field.
    return api.ICMPFields(type=icmp_map.get("type", 0),
                          code=icmp_map.get("code"))


def _protocol(value):
    try:
        return Protocol.from_string(value)
    except ParseError as e:
        raise ProviderError(str(e))


def resource_map_to_rule(rule_map):
    """
    Convert a rule config map to an api.Rule.

    :param dict rule_map: one element of a "rule" list.
    :return: api.Rule.
    :raises ProviderError: if a protocol, port or network does not parse.
    """
    rule = api.Rule()
    rule.action = rule_map.get("action") or ""
    if rule_map.get("protocol"):
        rule.protocol = _protocol(rule_map["protocol"])
    if rule_map.get("notProtocol"):
        rule.not_protocol = _protocol(rule_map["notProtocol"])
    rule.icmp = _icmp_from_list(rule_map.get("icmp"))
    rule.not_icmp = _icmp_from_list(rule_map.get("notICMP"))
    if rule_map.get("source"):
        rule.source = src_dst_list_to_entity_rule(rule_map["source"])
    if rule_map.get("destination"):
        rule.destination = src_dst_list_to_entity_rule(
            rule_map["destination"])
    return rule


def _parse_net(value):
    try:
        return net.parse_cidr(value)
    except ParseError as e:
        raise ProviderError(str(e))


def src_dst_list_to_entity_rule(src_dst_list):
    """
    Convert a source or destination block to an api.EntityRule.

    :param list src_dst_list: the block list; only the first is used.
    :return: api.EntityRule.
    """
    entity_rule = api.EntityRule()
    entity_map = src_dst_list[0] or {}

    if entity_map.get("net"):
        entity_rule.net = _parse_net(entity_map["net"])
    if entity_map.get("notNet"):
        entity_rule.not_net = _parse_net(entity_map["notNet"])
    entity_rule.tag = entity_map.get("tag") or ""
    entity_rule.not_tag = entity_map.get("notTag") or ""
    entity_rule.selector = entity_map.get("selector") or ""
    entity_rule.not_selector = entity_map.get("notSelector") or ""
    if entity_map.get("ports"):
        entity_rule.ports = to_port_list(entity_map["ports"])
    if entity_map.get("notPorts"):
        entity_rule.not_ports = to_port_list(entity_map["notPorts"])
    return entity_rule


def to_port_list(port_list):
    """
    :param list port_list: port strings, "N" or "N:M".
    :return: list of numorstring.Port.
    :raises ProviderError: on the first port that does not parse.
    """
    ports = []
    for value in port_list:
        try:
            ports.append(Port.from_string(value))
        except ParseError as e:
            raise ProviderError(str(e))
    return ports


def non_empty_entity_rule(entity_rule):
    """
    :return: True if any field of the entity rule is set.
    """
    return bool(entity_rule.tag or
                entity_rule.net is not None or
                entity_rule.selector or
                entity_rule.ports or
                entity_rule.not_tag or
                entity_rule.not_net is not None or
                entity_rule.not_selector or
                entity_rule.not_ports)


def _icmp_to_list(icmp):
    icmp_map = {}
    if icmp.type is not None:
        icmp_map["type"] = icmp.type
    if icmp.code is not None:
        icmp_map["code"] = icmp.code
    return [icmp_map]


def rules_to_map(rules):
    """
    Read api.Rules into a list of rule config maps.

    :param list rules: list of api.Rule.
    :return: list of dicts.
    """
    rule_maps = []
    for rule in rules:
        rule_map = {}
        if rule.action:
            rule_map["action"] = rule.action
        if rule.protocol is not None:
            rule_map["protocol"] = str(rule.protocol)
        if rule.not_protocol is not None:
            rule_map["notProtocol"] = str(rule.not_protocol)
        if rule.icmp is not None:
            rule_map["icmp"] = _icmp_to_list(rule.icmp)
        if rule.not_icmp is not None:
            rule_map["notICMP"] = _icmp_to_list(rule.not_icmp)
        if non_empty_entity_rule(rule.source):
            rule_map["source"] = [get_entity_rule_map(rule.source)]
        if non_empty_entity_rule(rule.destination):
            rule_map["destination"] = [get_entity_rule_map(rule.destination)]
        rule_maps.append(rule_map)
    return rule_maps


def d_to_rules(d, path):
    """
    Read the rule list at path (e.g. "spec.0.ingress.0.rule").

    :return: list of api.Rule.
    """
    rules = []
    count, ok = d.get_ok(path + ".#")
    if not ok:
        return rules
    for index in range(count):
        rule_map = d.get("%s.%d" % (path, index))
        rules.append(resource_map_to_rule(rule_map))
    _log.debug("Read %d rules from %s", len(rules), path)
    return rules


def rules_to_block(rules):
    """
    :return: the ingress/egress block list for a list of api.Rules.
    """
    if not rules:
        return []
    return [{"rule": rules_to_map(rules)}]


def d_to_cidr(d, field):
    """
    :return: the IPNetwork configured in field.
    :raises ProviderError: if the field is not a CIDR.
    """
    try:
        return net.parse_cidr(d.get(field))
    except ParseError as e:
        raise ProviderError("ERROR: couldn't parse CIDR: %s" % e)


def entity_rule_schema():
    return schema.Resource({
        "tag": schema.Schema(schema.TYPE_STRING, optional=True),
        "notTag": schema.Schema(schema.TYPE_STRING, optional=True),
        "net": schema.Schema(schema.TYPE_STRING, optional=True,
                             state_func=canonical_cidr),
        "notNet": schema.Schema(schema.TYPE_STRING, optional=True,
                                state_func=canonical_cidr),
        "selector": schema.Schema(schema.TYPE_STRING, optional=True),
        "notSelector": schema.Schema(schema.TYPE_STRING, optional=True),
        "ports": schema.Schema(
            schema.TYPE_LIST, optional=True,
            elem=schema.Schema(schema.TYPE_STRING, state_func=canonical_port)),
        "notPorts": schema.Schema(
            schema.TYPE_LIST, optional=True,
            elem=schema.Schema(schema.TYPE_STRING, state_func=canonical_port)),
    })


def icmp_schema():
    return schema.Resource({
        "type": schema.Schema(schema.TYPE_INT, optional=True),
        "code": schema.Schema(schema.TYPE_INT, required=True),
    })


def rule_schema():
    """
    :return: the schema of an ingress or egress block.
    """
    rule = schema.Resource({
        "action": schema.Schema(schema.TYPE_STRING, optional=True),
        "protocol": schema.Schema(schema.TYPE_STRING, required=True,
                                  state_func=canonical_protocol),
        "notProtocol": schema.Schema(schema.TYPE_STRING, optional=True,
                                     state_func=canonical_protocol),
        "icmp": schema.Schema(schema.TYPE_LIST, optional=True,
                              elem=icmp_schema()),
        "notICMP": schema.Schema(schema.TYPE_LIST, optional=True,
                                 elem=icmp_schema()),
        "source": schema.Schema(schema.TYPE_LIST, optional=True,
                                elem=entity_rule_schema()),
        "destination": schema.Schema(schema.TYPE_LIST, optional=True,
                                     elem=entity_rule_schema()),
    })
    return schema.Resource({
        "rule": schema.Schema(schema.TYPE_LIST, optional=True, elem=rule),
    })
