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
calico_provider.libcalico.backend.etcd
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

etcdv2 datastore backend, storing objects using the Calico v1 etcd
layout.
"""
import functools
import json
import logging
import re
from urllib.parse import urlparse

import etcd
from etcd import EtcdKeyNotFound, EtcdAlreadyExist, EtcdException
from netaddr import IPAddress

from calico_provider.libcalico import net
from calico_provider.libcalico.backend import model
from calico_provider.libcalico.backend.base import Backend, key_matches
from calico_provider.libcalico.errors import (DataStoreError,
                                              ResourceDoesNotExist,
                                              ResourceAlreadyExists)

_log = logging.getLogger(__name__)

ETCD_SCHEME_DEFAULT = "http"
ETCD_AUTHORITY_DEFAULT = "127.0.0.1:2379"

# etcd paths for Calico hosts, endpoints, policy and IPAM.
CALICO_V_PATH = "/calico/v1"
HOSTS_PATH = CALICO_V_PATH + "/host"
HOST_PATH = HOSTS_PATH + "/%(hostname)s"
HOST_METADATA_PATH = HOST_PATH + "/metadata"
HOST_ENDPOINT_PATH = HOST_PATH + "/endpoint/%(endpoint_id)s"
PROFILES_PATH = CALICO_V_PATH + "/policy/profile"
PROFILE_PATH = PROFILES_PATH + "/%(profile_id)s"
PROFILE_RULES_PATH = PROFILE_PATH + "/rules"
PROFILE_TAGS_PATH = PROFILE_PATH + "/tags"
PROFILE_LABELS_PATH = PROFILE_PATH + "/labels"
TIER_POLICIES_PATH = CALICO_V_PATH + "/policy/tier/%(tier)s/policy"
POLICY_PATH = TIER_POLICIES_PATH + "/%(policy_id)s"
IP_POOLS_PATH = CALICO_V_PATH + "/ipam"
IP_POOL_PATH = IP_POOLS_PATH + "/v%(version)s/pool/%(pool)s"

# Felix IPv4 host value.  Felix reads the node's IPv4 address from here.
HOST_IPV4_PATH = HOST_PATH + "/bird_ip"

# etcd paths for BGP specific configuration
BGP_V_PATH = "/calico/bgp/v1"
BGP_GLOBAL_PEER_PATH = BGP_V_PATH + "/global/peer_v%(version)s/%(peer_ip)s"
BGP_HOST_PATH = BGP_V_PATH + "/host/%(hostname)s"
BGP_HOST_IPV4_PATH = BGP_HOST_PATH + "/ip_addr_v4"
BGP_HOST_IPV6_PATH = BGP_HOST_PATH + "/ip_addr_v6"
BGP_HOST_AS_PATH = BGP_HOST_PATH + "/as_num"
BGP_HOST_PEER_PATH = BGP_HOST_PATH + "/peer_v%(version)s/%(peer_ip)s"

NODE_RE = re.compile(r'^/calico/v1/host/([^/]+)/metadata$')
GLOBAL_PEER_RE = re.compile(r'^/calico/bgp/v1/global/peer_v[46]/([^/]+)$')
HOST_PEER_RE = re.compile(
    r'^/calico/bgp/v1/host/([^/]+)/peer_v[46]/([^/]+)$')
IP_POOL_RE = re.compile(r'^/calico/v1/ipam/v[46]/pool/([^/]+)$')
POLICY_RE = re.compile(r'^/calico/v1/policy/tier/([^/]+)/policy/([^/]+)$')
PROFILE_RE = re.compile(r'^/calico/v1/policy/profile/([^/]+)/rules$')
HOST_ENDPOINT_RE = re.compile(r'^/calico/v1/host/([^/]+)/endpoint/([^/]+)$')


def handle_errors(fn):
    """
    Decorator function to decorate backend methods to handle common
    exception types and re-raise as datastore specific errors.
    :param fn: The function to decorate.
    :return: The decorated function.
    """
    @functools.wraps(fn)
    def wrapped(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except EtcdException as e:
            # Don't leak out etcd exceptions.
            raise DataStoreError("%s: Error accessing etcd (%s).  Is etcd "
                                 "running?" % (fn.__name__, e))
    return wrapped


def parse_etcd_hosts(etcd_config):
    """
    Work out the etcd scheme and (host, port) list from the etcd
    configuration.  Endpoints, when given, take precedence over the
    scheme and authority.

    :param etcd_config: api.EtcdConfig.
    :return: tuple of (scheme, [(host, port), ...]).
    """
    if etcd_config.etcd_endpoints:
        scheme = None
        hosts = []
        for endpoint in etcd_config.etcd_endpoints.split(","):
            url = urlparse(endpoint.strip())
            if not url.scheme or not url.hostname:
                raise DataStoreError("Invalid etcd endpoint %r" % endpoint)
            if scheme is not None and url.scheme != scheme:
                raise DataStoreError("etcd endpoints must all use the same "
                                     "scheme")
            scheme = url.scheme
            hosts.append((url.hostname, url.port or 2379))
        return scheme, hosts

    scheme = etcd_config.etcd_scheme or ETCD_SCHEME_DEFAULT
    authority = etcd_config.etcd_authority or ETCD_AUTHORITY_DEFAULT
    if ":" in authority:
        host, port = authority.split(":", 1)
        try:
            port = int(port)
        except ValueError:
            raise DataStoreError("Invalid etcd authority %r" % authority)
    else:
        host, port = authority, 2379
    return scheme, [(host, port)]


def new_etcd_client(etcd_config):
    """
    Build a python-etcd client from the etcd configuration.
    """
    scheme, hosts = parse_etcd_hosts(etcd_config)
    key_pair = None
    if etcd_config.etcd_cert_file and etcd_config.etcd_key_file:
        key_pair = (etcd_config.etcd_cert_file, etcd_config.etcd_key_file)
    kwargs = dict(protocol=scheme,
                  cert=key_pair,
                  ca_cert=etcd_config.etcd_ca_cert_file or None,
                  username=etcd_config.etcd_username or None,
                  password=etcd_config.etcd_password or None)
    _log.info("Connecting to etcd at %s://%s", scheme,
              ",".join("%s:%s" % h for h in hosts))

    # python-etcd requires a single etcd endpoint to be specified using the
    # host=, port= parameters, but requires a different syntax for
    # multiple (>1): host=((host, port), ...).
    if len(hosts) == 1:
        return etcd.Client(host=hosts[0][0], port=hosts[0][1], **kwargs)
    return etcd.Client(host=tuple(hosts), allow_reconnect=True, **kwargs)


class EtcdBackend(Backend):
    """
    Stores model documents in etcd.  Most objects are a single JSON value;
    nodes and profiles are spread over several keys, matching what Felix
    and BIRD read.
    """

    def __init__(self, etcd_config, client=None):
        self.etcd_client = client or new_etcd_client(etcd_config)

    # Layout.

    def _path(self, key):
        """
        :return: the etcd path whose presence means the object exists.
        """
        if isinstance(key, model.NodeKey):
            return HOST_METADATA_PATH % {"hostname": key.name}
        elif isinstance(key, model.BGPPeerKey):
            params = {"version": key.peer_ip.version,
                      "peer_ip": str(key.peer_ip),
                      "hostname": key.node}
            if key.is_global:
                return BGP_GLOBAL_PEER_PATH % params
            return BGP_HOST_PEER_PATH % params
        elif isinstance(key, model.IPPoolKey):
            return IP_POOL_PATH % {"version": key.cidr.version,
                                   "pool": str(key.cidr).replace("/", "-")}
        elif isinstance(key, model.PolicyKey):
            return POLICY_PATH % {"tier": key.tier, "policy_id": key.name}
        elif isinstance(key, model.ProfileKey):
            return PROFILE_RULES_PATH % {"profile_id": key.name}
        elif isinstance(key, model.HostEndpointKey):
            return HOST_ENDPOINT_PATH % {"hostname": key.node,
                                         "endpoint_id": key.name}
        raise TypeError("Unknown key type %r" % (key,))

    def _values(self, key, document):
        """
        :return: list of (path, value) to write, the existence path first.
        A value of None means the path should be removed.
        """
        path = self._path(key)
        if isinstance(key, model.NodeKey):
            params = {"hostname": key.name}
            as_num = document.get("as_num")
            return [
                (path, "{}"),
                (HOST_IPV4_PATH % params, document.get("ip_addr_v4")),
                (BGP_HOST_IPV4_PATH % params, document.get("ip_addr_v4")),
                (BGP_HOST_IPV6_PATH % params, document.get("ip_addr_v6")),
                (BGP_HOST_AS_PATH % params,
                 None if as_num is None else str(as_num)),
            ]
        elif isinstance(key, model.ProfileKey):
            params = {"profile_id": key.name}
            return [
                (path, json.dumps(document["rules"])),
                (PROFILE_TAGS_PATH % params, json.dumps(document["tags"])),
                (PROFILE_LABELS_PATH % params,
                 json.dumps(document["labels"])),
            ]
        return [(path, json.dumps(document))]

    def _read_optional(self, path):
        try:
            return self.etcd_client.read(path).value
        except EtcdKeyNotFound:
            return None

    def _read_document(self, key, value):
        if isinstance(key, model.NodeKey):
            params = {"hostname": key.name}
            as_num = self._read_optional(BGP_HOST_AS_PATH % params)
            return {
                "ip_addr_v4": self._read_optional(BGP_HOST_IPV4_PATH % params),
                "ip_addr_v6": self._read_optional(BGP_HOST_IPV6_PATH % params),
                "as_num": None if as_num is None else int(as_num),
            }
        elif isinstance(key, model.ProfileKey):
            params = {"profile_id": key.name}
            tags = self._read_optional(PROFILE_TAGS_PATH % params)
            labels = self._read_optional(PROFILE_LABELS_PATH % params)
            return {
                "rules": json.loads(value),
                "tags": json.loads(tags) if tags else [],
                "labels": json.loads(labels) if labels else {},
            }
        return json.loads(value)

    def _write_remaining(self, values):
        for path, value in values:
            if value is None:
                try:
                    self.etcd_client.delete(path)
                except EtcdKeyNotFound:
                    pass
            else:
                self.etcd_client.write(path, value)

    # Operations.

    @handle_errors
    def create(self, key, document):
        values = self._values(key, document)
        path, value = values[0]
        _log.debug("Creating %s at %s", key, path)
        try:
            self.etcd_client.write(path, value, prevExist=False)
        except EtcdAlreadyExist as e:
            raise ResourceAlreadyExists(key, e)
        self._write_remaining(values[1:])

    @handle_errors
    def update(self, key, document):
        values = self._values(key, document)
        path, value = values[0]
        _log.debug("Updating %s at %s", key, path)
        try:
            self.etcd_client.write(path, value, prevExist=True)
        except EtcdKeyNotFound as e:
            raise ResourceDoesNotExist(key, e)
        self._write_remaining(values[1:])

    @handle_errors
    def apply(self, key, document):
        _log.debug("Applying %s", key)
        self._write_remaining(self._values(key, document))

    @handle_errors
    def get(self, key):
        path = self._path(key)
        try:
            value = self.etcd_client.read(path).value
        except EtcdKeyNotFound as e:
            raise ResourceDoesNotExist(key, e)
        return self._read_document(key, value)

    @handle_errors
    def delete(self, key):
        path = self._path(key)
        _log.debug("Deleting %s at %s", key, path)
        if isinstance(key, model.NodeKey):
            try:
                self.etcd_client.delete(HOST_PATH % {"hostname": key.name},
                                        recursive=True, dir=True)
            except EtcdKeyNotFound as e:
                raise ResourceDoesNotExist(key, e)
            try:
                self.etcd_client.delete(BGP_HOST_PATH % {"hostname": key.name},
                                        recursive=True, dir=True)
            except EtcdKeyNotFound:
                pass
        elif isinstance(key, model.ProfileKey):
            try:
                self.etcd_client.delete(PROFILE_PATH % {"profile_id": key.name},
                                        recursive=True, dir=True)
            except EtcdKeyNotFound as e:
                raise ResourceDoesNotExist(key, e)
        else:
            try:
                self.etcd_client.delete(path)
            except EtcdKeyNotFound as e:
                raise ResourceDoesNotExist(key, e)

    @handle_errors
    def list(self, list_key):
        results = []
        for key in self._list_keys(list_key):
            if not key_matches(list_key, key):
                continue
            try:
                results.append((key, self.get(key)))
            except ResourceDoesNotExist:
                # Deleted between listing and reading.
                _log.debug("%s vanished during list", key)
        return sorted(results, key=lambda kv: str(kv[0]))

    def _leaf_paths(self, prefix):
        try:
            result = self.etcd_client.read(prefix, recursive=True)
        except EtcdKeyNotFound:
            return []
        return [leaf.key for leaf in result.leaves if not leaf.dir]

    def _list_keys(self, list_key):
        if isinstance(list_key, model.NodeKey):
            for path in self._leaf_paths(HOSTS_PATH):
                match = NODE_RE.match(path)
                if match:
                    yield model.NodeKey(match.group(1))
        elif isinstance(list_key, model.BGPPeerKey):
            for path in self._leaf_paths(BGP_V_PATH):
                match = GLOBAL_PEER_RE.match(path)
                if match:
                    yield model.BGPPeerKey("", IPAddress(match.group(1)))
                    continue
                match = HOST_PEER_RE.match(path)
                if match:
                    yield model.BGPPeerKey(match.group(1),
                                           IPAddress(match.group(2)))
        elif isinstance(list_key, model.IPPoolKey):
            for path in self._leaf_paths(IP_POOLS_PATH):
                match = IP_POOL_RE.match(path)
                if match:
                    cidr = match.group(1).replace("-", "/")
                    yield model.IPPoolKey(net.parse_cidr(cidr))
        elif isinstance(list_key, model.PolicyKey):
            for path in self._leaf_paths(CALICO_V_PATH + "/policy/tier"):
                match = POLICY_RE.match(path)
                if match:
                    yield model.PolicyKey(match.group(2), match.group(1))
        elif isinstance(list_key, model.ProfileKey):
            for path in self._leaf_paths(PROFILES_PATH):
                match = PROFILE_RE.match(path)
                if match:
                    yield model.ProfileKey(match.group(1))
        elif isinstance(list_key, model.HostEndpointKey):
            for path in self._leaf_paths(HOSTS_PATH):
                match = HOST_ENDPOINT_RE.match(path)
                if match:
                    yield model.HostEndpointKey(match.group(1),
                                                match.group(2))
        else:
            raise TypeError("Unknown key type %r" % (list_key,))
