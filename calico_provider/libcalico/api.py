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
calico_provider.libcalico.api
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

The Calico resource API.  Each resource is a metadata object, which
identifies it, and a spec object carrying its payload.
"""
DATASTORE_ETCDV2 = "etcdv2"
DATASTORE_KUBERNETES = "kubernetes"
DATASTORE_TYPES = (DATASTORE_ETCDV2, DATASTORE_KUBERNETES)

SCOPE_GLOBAL = "global"
SCOPE_NODE = "node"

ACTION_ALLOW = "allow"
ACTION_DENY = "deny"
ACTION_LOG = "log"
ACTION_PASS = "pass"
ACTIONS = (ACTION_ALLOW, ACTION_DENY, ACTION_LOG, ACTION_PASS)

IPIP_MODE_ALWAYS = "always"
IPIP_MODE_CROSS_SUBNET = "cross-subnet"


class APIObject(object):
    """
    Base class for API objects: equality and repr over the attributes.
    """

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return vars(self) == vars(other)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __repr__(self):
        fields = ", ".join("%s=%r" % (k, v)
                           for k, v in sorted(vars(self).items()))
        return "%s(%s)" % (self.__class__.__name__, fields)


class Resource(APIObject):
    kind = None

    def __init__(self, metadata, spec):
        self.metadata = metadata
        self.spec = spec


# Datastore access configuration.

class EtcdConfig(APIObject):
    def __init__(self, etcd_scheme="", etcd_authority="", etcd_endpoints="",
                 etcd_username="", etcd_password="", etcd_key_file="",
                 etcd_cert_file="", etcd_ca_cert_file=""):
        self.etcd_scheme = etcd_scheme
        self.etcd_authority = etcd_authority
        self.etcd_endpoints = etcd_endpoints
        self.etcd_username = etcd_username
        self.etcd_password = etcd_password
        self.etcd_key_file = etcd_key_file
        self.etcd_cert_file = etcd_cert_file
        self.etcd_ca_cert_file = etcd_ca_cert_file


class KubeConfig(APIObject):
    def __init__(self, kubeconfig="", k8s_api_endpoint="", k8s_cert_file="",
                 k8s_key_file="", k8s_ca_file="", k8s_api_token=""):
        self.kubeconfig = kubeconfig
        self.k8s_api_endpoint = k8s_api_endpoint
        self.k8s_cert_file = k8s_cert_file
        self.k8s_key_file = k8s_key_file
        self.k8s_ca_file = k8s_ca_file
        self.k8s_api_token = k8s_api_token


class CalicoAPIConfig(APIObject):
    """
    How to reach the Calico datastore.
    """
    def __init__(self, datastore_type=DATASTORE_ETCDV2, etcd_config=None,
                 kube_config=None):
        self.datastore_type = datastore_type
        self.etcd_config = etcd_config or EtcdConfig()
        self.kube_config = kube_config or KubeConfig()


# Rules.

class ICMPFields(APIObject):
    def __init__(self, type=None, code=None):
        self.type = type
        self.code = code


class EntityRule(APIObject):
    """
    Matches on the source or destination of a packet.  All fields are
    optional; an entity rule with nothing set matches everything.

    :param tag: match on a profile tag.
    :param net: IPNetwork to match on.
    :param selector: selector expression over endpoint labels.
    :param ports: list of numorstring.Port.
    """
    def __init__(self, tag="", net=None, selector="", ports=None,
                 not_tag="", not_net=None, not_selector="", not_ports=None):
        self.tag = tag
        self.net = net
        self.selector = selector
        self.ports = ports or []
        self.not_tag = not_tag
        self.not_net = not_net
        self.not_selector = not_selector
        self.not_ports = not_ports or []


class Rule(APIObject):
    """
    A single policy rule.  protocol and not_protocol are
    numorstring.Protocol objects (or None).
    """
    def __init__(self, action="", ip_version=None, protocol=None,
                 not_protocol=None, icmp=None, not_icmp=None, source=None,
                 destination=None):
        self.action = action
        self.ip_version = ip_version
        self.protocol = protocol
        self.not_protocol = not_protocol
        self.icmp = icmp
        self.not_icmp = not_icmp
        self.source = source or EntityRule()
        self.destination = destination or EntityRule()


# Node.

class NodeMetadata(APIObject):
    def __init__(self, name=""):
        self.name = name

    def identifier(self):
        return "Node(name=%s)" % self.name


class NodeBGPSpec(APIObject):
    """
    :param as_number: numorstring.ASNumber, or None to inherit the global
    default AS number.
    :param ipv4_address: IPAddress the node peers from over IPv4.
    :param ipv6_address: IPAddress the node peers from over IPv6.
    """
    def __init__(self, as_number=None, ipv4_address=None, ipv6_address=None):
        self.as_number = as_number
        self.ipv4_address = ipv4_address
        self.ipv6_address = ipv6_address


class NodeSpec(APIObject):
    def __init__(self, bgp=None):
        self.bgp = bgp


class Node(Resource):
    kind = "node"

    def __init__(self, metadata=None, spec=None):
        super(Node, self).__init__(metadata or NodeMetadata(),
                                   spec or NodeSpec())


# BGP peer.

class BGPPeerMetadata(APIObject):
    """
    A global peer peers with every node; a node peer only with the named
    node.
    """
    def __init__(self, scope="", node="", peer_ip=None):
        self.scope = scope
        self.node = node
        self.peer_ip = peer_ip

    def identifier(self):
        return "BGPPeer(scope=%s, node=%s, peerIP=%s)" % (
            self.scope, self.node, self.peer_ip)


class BGPPeerSpec(APIObject):
    def __init__(self, as_number=None):
        self.as_number = as_number


class BGPPeer(Resource):
    kind = "bgpPeer"

    def __init__(self, metadata=None, spec=None):
        super(BGPPeer, self).__init__(metadata or BGPPeerMetadata(),
                                      spec or BGPPeerSpec())


# IP pool.

class IPPoolMetadata(APIObject):
    def __init__(self, cidr=None):
        self.cidr = cidr

    def identifier(self):
        return "IPPool(cidr=%s)" % self.cidr


class IPIPConfiguration(APIObject):
    def __init__(self, enabled=False, mode=""):
        self.enabled = enabled
        self.mode = mode


class IPPoolSpec(APIObject):
    def __init__(self, ipip=None, nat_outgoing=False, disabled=False):
        self.ipip = ipip
        self.nat_outgoing = nat_outgoing
        self.disabled = disabled


class IPPool(Resource):
    kind = "ipPool"

    def __init__(self, metadata=None, spec=None):
        super(IPPool, self).__init__(metadata or IPPoolMetadata(),
                                     spec or IPPoolSpec())


# Policy.

class PolicyMetadata(APIObject):
    def __init__(self, name=""):
        self.name = name

    def identifier(self):
        return "Policy(name=%s)" % self.name


class PolicySpec(APIObject):
    """
    :param order: float, or None for the lowest priority.
    :param selector: selects the endpoints the policy applies to.
    """
    def __init__(self, order=None, selector="", ingress_rules=None,
                 egress_rules=None):
        self.order = order
        self.selector = selector
        self.ingress_rules = ingress_rules or []
        self.egress_rules = egress_rules or []


class Policy(Resource):
    kind = "policy"

    def __init__(self, metadata=None, spec=None):
        super(Policy, self).__init__(metadata or PolicyMetadata(),
                                     spec or PolicySpec())


# Profile.

class ProfileMetadata(APIObject):
    def __init__(self, name="", labels=None, tags=None):
        self.name = name
        self.labels = labels or {}
        self.tags = tags or []

    def identifier(self):
        return "Profile(name=%s)" % self.name


class ProfileSpec(APIObject):
    def __init__(self, ingress_rules=None, egress_rules=None):
        self.ingress_rules = ingress_rules or []
        self.egress_rules = egress_rules or []


class Profile(Resource):
    kind = "profile"

    def __init__(self, metadata=None, spec=None):
        super(Profile, self).__init__(metadata or ProfileMetadata(),
                                      spec or ProfileSpec())


# Host endpoint.

class HostEndpointMetadata(APIObject):
    def __init__(self, name="", node="", labels=None):
        self.name = name
        self.node = node
        self.labels = labels or {}

    def identifier(self):
        return "HostEndpoint(node=%s, name=%s)" % (self.node, self.name)


class HostEndpointSpec(APIObject):
    """
    :param interface_name: the host interface the endpoint is bound to.
    :param expected_ips: list of IPAddress expected on the interface.
    :param profiles: names of the profiles applied to the endpoint.
    """
    def __init__(self, interface_name="", expected_ips=None, profiles=None):
        self.interface_name = interface_name
        self.expected_ips = expected_ips or []
        self.profiles = profiles or []


class HostEndpoint(Resource):
    kind = "hostEndpoint"

    def __init__(self, metadata=None, spec=None):
        super(HostEndpoint, self).__init__(metadata or HostEndpointMetadata(),
                                           spec or HostEndpointSpec())
