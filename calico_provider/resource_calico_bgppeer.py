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


def resource_calico_bgppeer():
    spec = schema.Resource({
        "asNumber": schema.Schema(schema.TYPE_STRING, optional=True,
                                  state_func=canonical_asn),
    })
    return schema.Resource(
        {
            "scope": schema.Schema(schema.TYPE_STRING, optional=True,
                                   force_new=True),
            "node": schema.Schema(schema.TYPE_STRING, optional=True,
                                  force_new=True),
            "peerIP": schema.Schema(schema.TYPE_STRING, optional=True,
                                    force_new=True,
                                    state_func=canonical_ip),
            "spec": schema.Schema(schema.TYPE_LIST, optional=True,
                                  elem=spec),
        },
        create=resource_calico_bgppeer_create,
        read=resource_calico_bgppeer_read,
        update=resource_calico_bgppeer_update,
        delete=resource_calico_bgppeer_delete)


def bgppeer_id(d):
    """
    :return: the compound ID "<scope>_<node>_<peerIP>".
    """
    return "%s_%s_%s" % (d.get("scope"), d.get("node"), d.get("peerIP"))


def d_to_bgppeer_metadata(d):
    try:
        peer_ip = net.parse_ip(d.get("peerIP"))
    except ParseError as e:
        raise ProviderError("peerIP: %s" % e)
    return api.BGPPeerMetadata(scope=d.get("scope"),
                               node=d.get("node"),
                               peer_ip=peer_ip)


def d_to_bgppeer_spec(d):
    try:
        as_number = ASNumber.from_string(d.get("spec.0.asNumber"))
    except ParseError as e:
        raise ProviderError(str(e))
    return api.BGPPeerSpec(as_number=as_number)


def set_schema_fields_for_bgppeer_spec(bgp_peer, d):
    d.set("spec", [{"asNumber": str(bgp_peer.spec.as_number)}])


def resource_calico_bgppeer_create(d, meta):
    metadata = d_to_bgppeer_metadata(d)
    spec = d_to_bgppeer_spec(d)

    meta.client.bgp_peers().create(api.BGPPeer(metadata, spec))

    d.set_id(bgppeer_id(d))
    return resource_calico_bgppeer_read(d, meta)


def resource_calico_bgppeer_read(d, meta):
    try:
        bgp_peer = meta.client.bgp_peers().get(d_to_bgppeer_metadata(d))
    except ResourceDoesNotExist:
        _log.info("BGP peer %s no longer exists", bgppeer_id(d))
        d.set_id("")
        return

    d.set_id(bgppeer_id(d))
    set_schema_fields_for_bgppeer_spec(bgp_peer, d)


def resource_calico_bgppeer_update(d, meta):
    bgp_peers = meta.client.bgp_peers()
    metadata = d_to_bgppeer_metadata(d)
    try:
        bgp_peers.get(metadata)
    except ResourceDoesNotExist:
        d.set_id("")
        return

    # Simply recreate the complete resource.
    bgp_peers.apply(api.BGPPeer(metadata, d_to_bgppeer_spec(d)))


def resource_calico_bgppeer_delete(d, meta):
    try:
        meta.client.bgp_peers().delete(d_to_bgppeer_metadata(d))
    except ResourceDoesNotExist:
        _log.debug("BGP peer %s already deleted", bgppeer_id(d))
