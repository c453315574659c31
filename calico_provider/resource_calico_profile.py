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
from calico_provider.helpers import d_to_rules, rules_to_block, rule_schema
from calico_provider.libcalico import api
from calico_provider.libcalico.errors import ResourceDoesNotExist

_log = logging.getLogger(__name__)


def resource_calico_profile():
    spec = schema.Resource({
        "ingress": schema.Schema(schema.TYPE_LIST, optional=True,
                                 elem=rule_schema()),
        "egress": schema.Schema(schema.TYPE_LIST, optional=True,
                                elem=rule_schema()),
    })
    return schema.Resource(
        {
            "name": schema.Schema(schema.TYPE_STRING, optional=True,
                                  force_new=True),
            "labels": schema.Schema(schema.TYPE_MAP, optional=True),
            "tags": schema.Schema(schema.TYPE_LIST, optional=True,
                                  elem=schema.Schema(schema.TYPE_STRING)),
            "spec": schema.Schema(schema.TYPE_LIST, optional=True,
                                  elem=spec),
        },
        create=resource_calico_profile_create,
        read=resource_calico_profile_read,
        update=resource_calico_profile_update,
        delete=resource_calico_profile_delete)


def d_to_profile_metadata(d):
    metadata = api.ProfileMetadata(name=d.get("name"))
    labels, ok = d.get_ok("labels")
    if ok:
        metadata.labels = dict(labels)
    tags, ok = d.get_ok("tags")
    if ok:
        metadata.tags = list(tags)
    return metadata


def d_to_profile_spec(d):
    return api.ProfileSpec(
        ingress_rules=d_to_rules(d, "spec.0.ingress.0.rule"),
        egress_rules=d_to_rules(d, "spec.0.egress.0.rule"))


def set_schema_fields_for_profile_spec(profile, d):
    d.set("spec", [{
        "ingress": rules_to_block(profile.spec.ingress_rules),
        "egress": rules_to_block(profile.spec.egress_rules),
    }])


def resource_calico_profile_create(d, meta):
    metadata = d_to_profile_metadata(d)
    spec = d_to_profile_spec(d)

    meta.client.profiles().create(api.Profile(metadata, spec))

    d.set_id(metadata.name)
    return resource_calico_profile_read(d, meta)


def resource_calico_profile_read(d, meta):
    try:
        profile = meta.client.profiles().get(
            api.ProfileMetadata(name=d.get("name")))
    except ResourceDoesNotExist:
        _log.info("Profile %s no longer exists", d.get("name"))
        d.set_id("")
        return

    d.set_id(profile.metadata.name)
    d.set("name", profile.metadata.name)
    d.set("labels", profile.metadata.labels)
    d.set("tags", profile.metadata.tags)
    set_schema_fields_for_profile_spec(profile, d)


def resource_calico_profile_update(d, meta):
    profiles = meta.client.profiles()
    metadata = d_to_profile_metadata(d)
    try:
        profiles.get(metadata)
    except ResourceDoesNotExist:
        d.set_id("")
        return

    profiles.apply(api.Profile(metadata, d_to_profile_spec(d)))


def resource_calico_profile_delete(d, meta):
    try:
        meta.client.profiles().delete(api.ProfileMetadata(name=d.get("name")))
    except ResourceDoesNotExist:
        _log.debug("Profile %s already deleted", d.get("name"))
