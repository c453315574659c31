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
from calico_provider.helpers import d_to_cidr, canonical_cidr
from calico_provider.libcalico import api
from calico_provider.libcalico.errors import ResourceDoesNotExist

_log = logging.getLogger(__name__)


def resource_calico_ippool():
    ipip = schema.Resource({
        "enabled": schema.Schema(schema.TYPE_BOOL, optional=True),
    })
    spec = schema.Resource({
        "ipip": schema.Schema(schema.TYPE_LIST, optional=True, elem=ipip),
        "nat-outgoing": schema.Schema(schema.TYPE_BOOL, optional=True),
        "disabled": schema.Schema(schema.TYPE_BOOL, optional=True),
    })
    return schema.Resource(
        {
            "cidr": schema.Schema(schema.TYPE_STRING, optional=True,
                                  force_new=True,
                                  state_func=canonical_cidr),
            "spec": schema.Schema(schema.TYPE_LIST, optional=True,
                                  elem=spec),
        },
        create=resource_calico_ippool_create,
        read=resource_calico_ippool_read,
        update=resource_calico_ippool_update,
        delete=resource_calico_ippool_delete)


def d_to_ippool_metadata(d):
    return api.IPPoolMetadata(cidr=d_to_cidr(d, "cidr"))


def d_to_ippool_spec(d):
    spec = api.IPPoolSpec()
    if d.get("spec.0.ipip.0.enabled"):
        spec.ipip = api.IPIPConfiguration(enabled=True)
    spec.nat_outgoing = d.get("spec.0.nat-outgoing")
    spec.disabled = d.get("spec.0.disabled")
    return spec


def set_schema_fields_for_ippool_spec(ip_pool, d):
    spec_map = {
        "nat-outgoing": ip_pool.spec.nat_outgoing,
        "disabled": ip_pool.spec.disabled,
    }
    if ip_pool.spec.ipip is not None:
        spec_map["ipip"] = [{"enabled": ip_pool.spec.ipip.enabled}]
    d.set("spec", [spec_map])


def resource_calico_ippool_create(d, meta):
    metadata = d_to_ippool_metadata(d)
    spec = d_to_ippool_spec(d)

    meta.client.ip_pools().create(api.IPPool(metadata, spec))

    d.set_id(str(metadata.cidr))
    return resource_calico_ippool_read(d, meta)


def resource_calico_ippool_read(d, meta):
    try:
        ip_pool = meta.client.ip_pools().get(d_to_ippool_metadata(d))
    except ResourceDoesNotExist:
        _log.info("IP pool %s no longer exists", d.get("cidr"))
        d.set_id("")
        return

    d.set_id(str(ip_pool.metadata.cidr))
    d.set("cidr", str(ip_pool.metadata.cidr))
    set_schema_fields_for_ippool_spec(ip_pool, d)


def resource_calico_ippool_update(d, meta):
    ip_pools = meta.client.ip_pools()
    metadata = d_to_ippool_metadata(d)
    try:
        ip_pools.get(metadata)
    except ResourceDoesNotExist:
        d.set_id("")
        return

    # Simply recreate the complete resource.
    ip_pools.apply(api.IPPool(metadata, d_to_ippool_spec(d)))


def resource_calico_ippool_delete(d, meta):
    try:
        meta.client.ip_pools().delete(d_to_ippool_metadata(d))
    except ResourceDoesNotExist:
        _log.debug("IP pool %s already deleted", d.get("cidr"))
