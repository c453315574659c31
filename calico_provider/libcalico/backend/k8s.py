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
calico_provider.libcalico.backend.k8s
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Kubernetes datastore backend.  Calico objects are stored as custom
resources in the crd.projectcalico.org API group; node BGP configuration
is stored as annotations on the Kubernetes Node.
"""
import json
import logging
import os

from netaddr import IPAddress
from pykube.config import KubeConfig
from pykube.http import HTTPClient
import requests

from calico_provider.libcalico import net
from calico_provider.libcalico.backend import model
from calico_provider.libcalico.backend.base import Backend, key_matches
from calico_provider.libcalico.errors import (DataStoreError,
                                              ResourceDoesNotExist,
                                              ResourceAlreadyExists)

_log = logging.getLogger(__name__)

CRD_VERSION = "crd.projectcalico.org/v1"
CORE_VERSION = "v1"

ANNOTATION_PREFIX = "projectcalico.org/"
NODE_IPV4_ANNOTATION = ANNOTATION_PREFIX + "IPv4Address"
NODE_IPV6_ANNOTATION = ANNOTATION_PREFIX + "IPv6Address"
NODE_ASN_ANNOTATION = ANNOTATION_PREFIX + "ASNumber"

# Annotations recording the Calico identity of a custom resource, since
# Kubernetes names cannot hold CIDRs or IPv6 addresses.
KEY_ANNOTATION = ANNOTATION_PREFIX + "key"

# key type -> (plural resource name, kind)
CUSTOM_RESOURCES = {
    model.BGPPeerKey: ("bgppeers", "BGPPeer"),
    model.IPPoolKey: ("ippools", "IPPool"),
    model.PolicyKey: ("globalnetworkpolicies", "GlobalNetworkPolicy"),
    model.ProfileKey: ("profiles", "Profile"),
    model.HostEndpointKey: ("hostendpoints", "HostEndpoint"),
}

MERGE_PATCH = "application/merge-patch+json"


def _dns_name(value):
    return str(value).lower().replace(".", "-").replace(":", "-").replace(
        "/", "-")


def object_name(key):
    """
    :return: the Kubernetes object name for a key.
    """
    if isinstance(key, model.IPPoolKey):
        return _dns_name(key.cidr)
    elif isinstance(key, model.BGPPeerKey):
        node = key.node if not key.is_global else "global"
        return "%s.%s" % (node.lower(), _dns_name(key.peer_ip))
    elif isinstance(key, model.PolicyKey):
        return key.name.lower()
    elif isinstance(key, model.ProfileKey):
        return key.name.lower()
    elif isinstance(key, model.HostEndpointKey):
        return "%s.%s" % (key.node.lower(), key.name.lower())
    raise TypeError("Unknown key type %r" % (key,))


def key_to_annotation(key):
    fields = dict(zip(key._fields, (str(f) for f in key)))
    return json.dumps(fields, sort_keys=True)


def key_from_annotation(key_class, annotation):
    fields = json.loads(annotation)
    if key_class is model.BGPPeerKey:
        fields["peer_ip"] = IPAddress(fields["peer_ip"])
    elif key_class is model.IPPoolKey:
        fields["cidr"] = net.parse_cidr(fields["cidr"])
    return key_class(**fields)


class PykubeTransport(object):
    """
    Sends requests using the credentials from a kubeconfig file.
    """

    def __init__(self, kubeconfig):
        _log.info("Using kubeconfig at %s", kubeconfig)
        self.api = HTTPClient(KubeConfig.from_file(kubeconfig))

    def request(self, method, version, path, body=None, content_type=None):
        kwargs = {}
        if body is not None:
            kwargs["data"] = json.dumps(body)
            kwargs["headers"] = {
                "Content-Type": content_type or "application/json"}
        return self.api.request(method, url=path, version=version, **kwargs)


class SessionTransport(object):
    """
    Sends requests directly to the API server, authenticating with a bearer
    token and/or a client certificate.
    """

    def __init__(self, kube_config):
        if not kube_config.k8s_api_endpoint:
            raise DataStoreError("Kubernetes API endpoint must be "
                                 "specified when no kubeconfig is given")
        self.api_root = kube_config.k8s_api_endpoint.rstrip("/")
        self.session = requests.Session()
        if kube_config.k8s_api_token:
            _log.debug("Using bearer token for Kubernetes API")
            self.session.headers.update(
                {'Authorization': 'Bearer ' + kube_config.k8s_api_token})
        if kube_config.k8s_cert_file and kube_config.k8s_key_file:
            _log.debug("Using client certificate for Kubernetes API. "
                       "cert: %s, key: %s", kube_config.k8s_cert_file,
                       kube_config.k8s_key_file)
            self.session.cert = (kube_config.k8s_cert_file,
                                 kube_config.k8s_key_file)
        if kube_config.k8s_ca_file:
            self.session.verify = kube_config.k8s_ca_file

    def url(self, version, path):
        base = "api" if version == CORE_VERSION else "apis"
        return "/".join([self.api_root, base, version, path])

    def request(self, method, version, path, body=None, content_type=None):
        kwargs = {}
        if body is not None:
            kwargs["data"] = json.dumps(body)
            kwargs["headers"] = {
                "Content-Type": content_type or "application/json"}
        return self.session.request(method, self.url(version, path), **kwargs)


def new_transport(kube_config):
    # If kubeconfig was specified, use the pykube library.
    if kube_config.kubeconfig:
        return PykubeTransport(os.path.expanduser(kube_config.kubeconfig))
    return SessionTransport(kube_config)


class KubernetesBackend(Backend):

    def __init__(self, kube_config, transport=None):
        self.transport = transport or new_transport(kube_config)

    def _request(self, method, version, path, body=None, content_type=None,
                 key=None):
        """
        Perform an API request, mapping HTTP failures to datastore errors.

        :return: the decoded JSON response body.
        """
        _log.debug("Kubernetes API %s %s/%s", method, version, path)
        try:
            response = self.transport.request(method, version, path,
                                              body=body,
                                              content_type=content_type)
        except requests.RequestException as e:
            _log.exception("Exception hitting Kubernetes API")
            raise DataStoreError("Error accessing Kubernetes API (%s)" % e)

        if response.status_code == 404:
            raise ResourceDoesNotExist(key or path)
        if response.status_code == 409 and method == "POST":
            raise ResourceAlreadyExists(key or path)
        if response.status_code >= 400:
            _log.error("Response from API returned %s Error:\n%s",
                       response.status_code, response.text)
            raise DataStoreError("Error from Kubernetes API (%s): %s" %
                                 (response.status_code, response.text))
        if not response.text:
            return {}
        try:
            return json.loads(response.text)
        except ValueError:
            raise DataStoreError("Error parsing Kubernetes API response: %s"
                                 % response.text)

    # Nodes.

    def _node_annotations(self, document):
        as_num = document.get("as_num")
        return {
            NODE_IPV4_ANNOTATION: document.get("ip_addr_v4"),
            NODE_IPV6_ANNOTATION: document.get("ip_addr_v6"),
            NODE_ASN_ANNOTATION: None if as_num is None else str(as_num),
        }

    def _node_document(self, k8s_node):
        annotations = k8s_node.get("metadata", {}).get("annotations") or {}
        as_num = annotations.get(NODE_ASN_ANNOTATION)
        return {
            "ip_addr_v4": annotations.get(NODE_IPV4_ANNOTATION),
            "ip_addr_v6": annotations.get(NODE_IPV6_ANNOTATION),
            "as_num": None if as_num is None else int(as_num),
        }

    def _patch_node(self, key, annotations):
        body = {"metadata": {"annotations": annotations}}
        self._request("PATCH", CORE_VERSION, "nodes/%s" % key.name,
                      body=body, content_type=MERGE_PATCH, key=key)

    def _node_has_calico_config(self, document):
        return any(v is not None for v in document.values())

    # Custom resources.

    def _resource_path(self, key, named=True):
        plural, _ = CUSTOM_RESOURCES[type(key)]
        if named:
            return "%s/%s" % (plural, object_name(key))
        return plural

    def _custom_resource(self, key, document, resource_version=None):
        _, kind = CUSTOM_RESOURCES[type(key)]
        metadata = {
            "name": object_name(key),
            "annotations": {KEY_ANNOTATION: key_to_annotation(key)},
        }
        if resource_version is not None:
            metadata["resourceVersion"] = resource_version
        return {
            "apiVersion": CRD_VERSION,
            "kind": kind,
            "metadata": metadata,
            "spec": document,
        }

    # Operations.

    def create(self, key, document):
        if isinstance(key, model.NodeKey):
            # Kubernetes owns the Node object; Calico only annotates it.
            existing = self._node_document(self._request(
                "GET", CORE_VERSION, "nodes/%s" % key.name, key=key))
            if self._node_has_calico_config(existing):
                raise ResourceAlreadyExists(key)
            self._patch_node(key, self._node_annotations(document))
            return
        self._request("POST", CRD_VERSION, self._resource_path(key, False),
                      body=self._custom_resource(key, document), key=key)

    def update(self, key, document):
        if isinstance(key, model.NodeKey):
            self._patch_node(key, self._node_annotations(document))
            return
        current = self._request("GET", CRD_VERSION, self._resource_path(key),
                                key=key)
        version = current.get("metadata", {}).get("resourceVersion")
        self._request("PUT", CRD_VERSION, self._resource_path(key),
                      body=self._custom_resource(key, document, version),
                      key=key)

    def apply(self, key, document):
        if isinstance(key, model.NodeKey):
            self._patch_node(key, self._node_annotations(document))
            return
        try:
            self.update(key, document)
        except ResourceDoesNotExist:
            self.create(key, document)

    def get(self, key):
        if isinstance(key, model.NodeKey):
            return self._node_document(self._request(
                "GET", CORE_VERSION, "nodes/%s" % key.name, key=key))
        obj = self._request("GET", CRD_VERSION, self._resource_path(key),
                            key=key)
        return obj.get("spec") or {}

    def delete(self, key):
        if isinstance(key, model.NodeKey):
            self._patch_node(key, {NODE_IPV4_ANNOTATION: None,
                                   NODE_IPV6_ANNOTATION: None,
                                   NODE_ASN_ANNOTATION: None})
            return
        self._request("DELETE", CRD_VERSION, self._resource_path(key),
                      key=key)

    def list(self, list_key):
        results = []
        if isinstance(list_key, model.NodeKey):
            items = self._request("GET", CORE_VERSION,
                                  "nodes").get("items", [])
            for item in items:
                key = model.NodeKey(item["metadata"]["name"])
                if key_matches(list_key, key):
                    results.append((key, self._node_document(item)))
        else:
            items = self._request("GET", CRD_VERSION,
                                  self._resource_path(list_key, False)).get(
                                      "items", [])
            for item in items:
                annotations = item["metadata"].get("annotations") or {}
                if KEY_ANNOTATION not in annotations:
                    _log.warning("Skipping %s without Calico key",
                                 item["metadata"].get("name"))
                    continue
                key = key_from_annotation(type(list_key),
                                          annotations[KEY_ANNOTATION])
                if key_matches(list_key, key):
                    results.append((key, item.get("spec") or {}))
        return sorted(results, key=lambda kv: str(kv[0]))
