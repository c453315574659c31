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
from calico_provider.helpers import canonical_asn, canonical_ip
from calico_provider.libcalico import api
from calico_provider.libcalico import net
from calico_provider.libcalico.errors import ResourceDoesNotExist, ParseError
from calico_provider.libcalico.numorstring import ASNumber

_log = logging.getLogger(__name__)


def resource_calico_node():
    bgp = schema.Resource({
        "asNumber": schema.Schema(schema.TYPE_STRING, optional=True,
                                  state_func=canonical_asn),
        "ipv4Address": schema.Schema(schema.TYPE_STRING, optional=True,
                                     state_func=canonical_ip),
        "ipv6Address": schema.Schema(schema.TYPE_STRING, optional=True,
                                     state_func=canonical_ip),
    })
    spec = schema.Resource({
        "bgp": schema.Schema(schema.TYPE_LIST, optional=True, elem=bgp),
    })
    return schema.Resource(
        {
            "name": schema.Schema(schema.TYPE_STRING, required=True,
                                  force_new=True),
            "spec": schema.Schema(schema.TYPE_LIST, optional=True,
                                  elem=spec),
        },
        create=resource_calico_node_create,
        read=resource_calico_node_read,
        update=resource_calico_node_update,
        delete=resource_calico_node_delete)


def d_to_node_metadata(d):
    return api.NodeMetadata(name=d.get("name"))


def _parse_address(d, field):
    value = d.get(field)
    if not value:
        return None
    try:
        return net.parse_ip(value)
    except ParseError as e:
        raise ProviderError("%s: %s" % (field, e))


def d_to_node_spec(d):
    """
    Build the NodeSpec.  A BGP spec is only set when a bgp block is
    configured; an empty asNumber leaves the node on the global default.
    """
    spec = api.NodeSpec()
    if not d.get("spec.0.bgp.#"):
        return spec

    bgp_spec = api.NodeBGPSpec()
    as_number = d.get("spec.0.bgp.0.asNumber")
    if as_number:
        try:
            bgp_spec.as_number = ASNumber.from_string(as_number)
        except ParseError as e:
            raise ProviderError(str(e))
    bgp_spec.ipv4_address = _parse_address(d, "spec.0.bgp.0.ipv4Address")
    bgp_spec.ipv6_address = _parse_address(d, "spec.0.bgp.0.ipv6Address")
    spec.bgp = bgp_spec
    return spec


def set_schema_fields_for_node_spec(node, d):
    bgp = node.spec.bgp
    if bgp is None:
        d.set("spec", [])
        return
    bgp_map = {}
    if bgp.as_number is not None:
        bgp_map["asNumber"] = str(bgp.as_number)
    if bgp.ipv4_address is not None:
        bgp_map["ipv4Address"] = str(bgp.ipv4_address)
    if bgp.ipv6_address is not None:
        bgp_map["ipv6Address"] = str(bgp.ipv6_address)
    d.set("spec", [{"bgp": [bgp_map]}])


def resource_calico_node_create(d, meta):
    metadata = d_to_node_metadata(d)
    spec = d_to_node_spec(d)

    meta.client.nodes().create(api.Node(metadata, spec))

    d.set_id(metadata.name)
    return resource_calico_node_read(d, meta)


def resource_calico_node_read(d, meta):
    try:
        node = meta.client.nodes().get(d_to_node_metadata(d))
    except ResourceDoesNotExist:
        _log.info("Node %s no longer exists", d.get("name"))
        d.set_id("")
        return

    d.set_id(node.metadata.name)
    d.set("name", node.metadata.name)
    set_schema_fields_for_node_spec(node, d)


def resource_calico_node_update(d, meta):
    nodes = meta.client.nodes()
    metadata = d_to_node_metadata(d)
    try:
        nodes.get(metadata)
    except ResourceDoesNotExist:
        d.set_id("")
        return

    # Simply recreate the complete resource.
    nodes.apply(api.Node(metadata, d_to_node_spec(d)))


def resource_calico_node_delete(d, meta):
    try:
        meta.client.nodes().delete(d_to_node_metadata(d))
    except ResourceDoesNotExist:
        _log.debug("Node %s already deleted", d.get("name"))
