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
import logging

from calico_provider import schema
from calico_provider.errors import ProviderError
from calico_provider.helpers import canonical_ip
from calico_provider.libcalico import api
from calico_provider.libcalico import net
from calico_provider.libcalico.errors import ResourceDoesNotExist, ParseError

_log = logging.getLogger(__name__)


def resource_calico_hostendpoint():
    return schema.Resource(
        {
            "name": schema.Schema(schema.TYPE_STRING, optional=True,
                                  force_new=True),
            "labels": schema.Schema(schema.TYPE_MAP, optional=True),
            "node": schema.Schema(schema.TYPE_STRING, required=True,
                                  force_new=True),
            "interface": schema.Schema(schema.TYPE_STRING, required=True),
            "expected_ips": schema.Schema(
                schema.TYPE_LIST, required=True,
                elem=schema.Schema(schema.TYPE_STRING,
                                   state_func=canonical_ip)),
            "profiles": schema.Schema(
                schema.TYPE_LIST, optional=True,
                elem=schema.Schema(schema.TYPE_STRING)),
        },
        create=resource_calico_hostendpoint_create,
        read=resource_calico_hostendpoint_read,
        update=resource_calico_hostendpoint_update,
        delete=resource_calico_hostendpoint_delete)


def d_to_hostendpoint_metadata(d):
    metadata = api.HostEndpointMetadata(name=d.get("name"),
                                        node=d.get("node"))
    labels, ok = d.get_ok("labels")
    if ok:
        metadata.labels = dict(labels)
    return metadata


def d_to_hostendpoint_spec(d):
    spec = api.HostEndpointSpec(interface_name=d.get("interface"))
    for index in range(d.get("expected_ips.#")):
        ip = d.get("expected_ips.%d" % index)
        try:
            spec.expected_ips.append(net.parse_ip(ip))
        except ParseError:
            raise ProviderError("expected_ips: %s is not IP" % ip)
    for index in range(d.get("profiles.#")):
        spec.profiles.append(d.get("profiles.%d" % index))
    return spec


def resource_calico_hostendpoint_create(d, meta):
    metadata = d_to_hostendpoint_metadata(d)
    spec = d_to_hostendpoint_spec(d)

    meta.client.host_endpoints().create(api.HostEndpoint(metadata, spec))

    d.set_id(metadata.name)
    return resource_calico_hostendpoint_read(d, meta)


def resource_calico_hostendpoint_read(d, meta):
    try:
        host_endpoint = meta.client.host_endpoints().get(
            api.HostEndpointMetadata(name=d.get("name"), node=d.get("node")))
    except ResourceDoesNotExist:
        _log.info("Host endpoint %s on %s no longer exists",
                  d.get("name"), d.get("node"))
        d.set_id("")
        return

    d.set_id(host_endpoint.metadata.name)
    d.set("name", host_endpoint.metadata.name)
    d.set("node", host_endpoint.metadata.node)
    d.set("labels", host_endpoint.metadata.labels)
    d.set("profiles", host_endpoint.spec.profiles)
    d.set("expected_ips", [str(ip) for ip in host_endpoint.spec.expected_ips])
    d.set("interface", host_endpoint.spec.interface_name)


def resource_calico_hostendpoint_update(d, meta):
    host_endpoints = meta.client.host_endpoints()
    metadata = d_to_hostendpoint_metadata(d)
    try:
        host_endpoints.get(metadata)
    except ResourceDoesNotExist:
        d.set_id("")
        return

    host_endpoints.apply(
        api.HostEndpoint(metadata, d_to_hostendpoint_spec(d)))


def resource_calico_hostendpoint_delete(d, meta):
    try:
        meta.client.host_endpoints().delete(
            api.HostEndpointMetadata(name=d.get("name"), node=d.get("node")))
    except ResourceDoesNotExist:
        _log.debug("Host endpoint %s on %s already deleted",
                   d.get("name"), d.get("node"))
