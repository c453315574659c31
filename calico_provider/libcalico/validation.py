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
calico_provider.libcalico.validation
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Validation of API resources before they are written to the datastore.
Each validator appends human readable issues to a list; validate() raises
a ValidationError carrying all of them.
"""
import logging
import re

from calico_provider.libcalico import api
from calico_provider.libcalico.errors import ValidationError
from calico_provider.libcalico.selector import (validate_selector, BadSelector,
                                                LABEL_CHARS)

_log = logging.getLogger(__name__)

# Regex that matches only names with valid characters in them. The list of
# valid characters is the same for nodes, profiles, policies and tags.
VALID_ID_RE = re.compile(r'^[a-zA-Z0-9_\.\-]+$')

# Regex for validating the names of labels, which need to be rich enough to
# allow for Kubernetes implementation, for example.
VALID_LABEL_NAME_RE = re.compile(r'^[%s]+$' % re.escape(LABEL_CHARS))

VALID_LINUX_IFACE_NAME_RE = re.compile(r'^[a-zA-Z0-9_.-]{1,15}$')

# Protocols that ICMP type and code may be used with.
ICMP_PROTOCOLS = ("icmp", "icmpv6", 1, 58)

# Smallest pools usable with Calico IPAM block allocation.
MIN_POOL_PREFIX = {4: 26, 6: 122}


def validate(resource):
    """
    Validate an API resource.

    :param resource: api.Resource subclass instance.
    :raises ValidationError: if there are any issues.
    """
    validator = _VALIDATORS[type(resource)]
    issues = []
    validator(resource, issues)
    if issues:
        _log.warning("Validation of %s failed: %s",
                     resource.metadata.identifier(), issues)
        raise ValidationError(resource.metadata.identifier(), issues)


def _validate_name(kind, name, issues):
    if not name:
        issues.append("%s name must be specified." % kind)
    elif not VALID_ID_RE.match(name):
        issues.append("Invalid %s name %r." % (kind, name))


def _validate_labels(labels, issues):
    for name, value in labels.items():
        if not VALID_LABEL_NAME_RE.match(name):
            issues.append("Invalid label name %r." % name)
        if not isinstance(value, str):
            issues.append("Label %s value should be a string." % name)


def _validate_selector(field, selector, issues):
    if not selector:
        return
    try:
        validate_selector(selector)
    except BadSelector:
        issues.append("Invalid %s: %r" % (field, selector))


def validate_rule(rule, issues):
    """
    Validates a single rule.

    :param api.Rule rule: the rule.
    :param list[str] issues: List of issues found.  This method appends any
           issues it finds to the list.
    """
    if rule.action and rule.action not in api.ACTIONS:
        issues.append("Invalid action %r in rule." % rule.action)

    if rule.ip_version not in (None, 4, 6):
        issues.append("Invalid IP version %r in rule." % rule.ip_version)

    protocol = rule.protocol
    for field, icmp in (("icmp", rule.icmp), ("notICMP", rule.not_icmp)):
        if icmp is None:
            continue
        if protocol is None or protocol.value not in ICMP_PROTOCOLS:
            issues.append("%s may only be used with protocol icmp or "
                          "icmpv6." % field)
        for name, value in (("type", icmp.type), ("code", icmp.code)):
            if value is not None and not 0 <= value <= 255:
                issues.append("ICMP %s %s is out of range in %s." %
                              (name, value, field))
        if icmp.code is not None and icmp.type is None:
            # ICMP code without ICMP type is not supported by iptables.
            issues.append("ICMP code specified without ICMP type in %s." %
                          field)

    for direction, entity in (("source", rule.source),
                              ("destination", rule.destination)):
        _validate_entity_rule(direction, entity, rule, issues)


def _validate_entity_rule(direction, entity, rule, issues):
    for field in ("tag", "not_tag"):
        tag = getattr(entity, field)
        if tag and not VALID_ID_RE.match(tag):
            issues.append("Invalid %s %s: %r." % (direction, field, tag))

    for field in ("selector", "not_selector"):
        _validate_selector("%s %s" % (direction, field),
                           getattr(entity, field), issues)

    for field in ("net", "not_net"):
        network = getattr(entity, field)
        if (network is not None and rule.ip_version is not None and
                network.version != rule.ip_version):
            issues.append("%s %s %s does not match rule IP version %s." %
                          (direction, field, network, rule.ip_version))

    if entity.ports or entity.not_ports:
        if rule.protocol is None or not rule.protocol.supports_ports():
            issues.append("%s ports are not allowed for protocol %s." %
                          (direction, rule.protocol))


def _validate_rules(rules, issues):
    for rule in rules:
        validate_rule(rule, issues)


def validate_node(node, issues):
    _validate_name("node", node.metadata.name, issues)
    bgp = node.spec.bgp
    if bgp is None:
        return
    if bgp.ipv4_address is None and bgp.ipv6_address is None:
        issues.append("Node BGP spec requires an IPv4 or IPv6 address.")
    if bgp.ipv4_address is not None and bgp.ipv4_address.version != 4:
        issues.append("Node ipv4Address %s is not IPv4." % bgp.ipv4_address)
    if bgp.ipv6_address is not None and bgp.ipv6_address.version != 6:
        issues.append("Node ipv6Address %s is not IPv6." % bgp.ipv6_address)


def validate_bgp_peer(peer, issues):
    metadata = peer.metadata
    if metadata.scope == api.SCOPE_GLOBAL:
        if metadata.node:
            issues.append("Node should not be specified for a global "
                          "BGP peer.")
    elif metadata.scope == api.SCOPE_NODE:
        _validate_name("node", metadata.node, issues)
    else:
        issues.append("Invalid BGP peer scope %r." % metadata.scope)
    if metadata.peer_ip is None:
        issues.append("BGP peer IP must be specified.")
    if peer.spec.as_number is None:
        issues.append("BGP peer AS number must be specified.")


def validate_ip_pool(pool, issues):
    cidr = pool.metadata.cidr
    if cidr is None:
        issues.append("IP pool CIDR must be specified.")
        return
    if cidr.prefixlen > MIN_POOL_PREFIX[cidr.version]:
        issues.append("IP pool size is too small (min /%s) for use with "
                      "Calico IPAM." % MIN_POOL_PREFIX[cidr.version])
    ipip = pool.spec.ipip
    if ipip is not None and ipip.enabled and cidr.version == 6:
        issues.append("IPIP is not supported on an IPv6 pool.")
    if ipip is not None and ipip.mode not in ("", api.IPIP_MODE_ALWAYS,
                                              api.IPIP_MODE_CROSS_SUBNET):
        issues.append("Invalid IPIP mode %r." % ipip.mode)


def validate_policy(policy, issues):
    _validate_name("policy", policy.metadata.name, issues)
    _validate_selector("selector", policy.spec.selector, issues)
    _validate_rules(policy.spec.ingress_rules, issues)
    _validate_rules(policy.spec.egress_rules, issues)


def validate_profile(profile, issues):
    _validate_name("profile", profile.metadata.name, issues)
    _validate_labels(profile.metadata.labels, issues)
    for tag in profile.metadata.tags:
        if not VALID_ID_RE.match(tag):
            issues.append("Invalid tag %r." % tag)
    _validate_rules(profile.spec.ingress_rules, issues)
    _validate_rules(profile.spec.egress_rules, issues)


def validate_host_endpoint(endpoint, issues):
    metadata = endpoint.metadata
    _validate_name("host endpoint", metadata.name, issues)
    _validate_name("node", metadata.node, issues)
    _validate_labels(metadata.labels, issues)
    spec = endpoint.spec
    if not spec.interface_name and not spec.expected_ips:
        issues.append("Host endpoint requires an interface name or "
                      "expected IPs.")
    if (spec.interface_name and
            not VALID_LINUX_IFACE_NAME_RE.match(spec.interface_name)):
        issues.append("Invalid interface name %r." % spec.interface_name)
    for profile in spec.profiles:
        if not VALID_ID_RE.match(profile):
            issues.append("Invalid profile name %r." % profile)


_VALIDATORS = {
    api.Node: validate_node,
    api.BGPPeer: validate_bgp_peer,
    api.IPPool: validate_ip_pool,
    api.Policy: validate_policy,
    api.Profile: validate_profile,
    api.HostEndpoint: validate_host_endpoint,
}
