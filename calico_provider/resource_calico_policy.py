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


def resource_calico_policy():
    spec = schema.Resource({
        "order": schema.Schema(schema.TYPE_FLOAT, optional=True),
        "selector": schema.Schema(schema.TYPE_STRING, optional=True),
        "ingress": schema.Schema(schema.TYPE_LIST, optional=True,
                                 elem=rule_schema()),
        "egress": schema.Schema(schema.TYPE_LIST, optional=True,
                                elem=rule_schema()),
    })
    return schema.Resource(
        {
            "name": schema.Schema(schema.TYPE_STRING, required=True,
                                  force_new=True),
            "spec": schema.Schema(schema.TYPE_LIST, optional=True,
                                  elem=spec),
        },
        create=resource_calico_policy_create,
        read=resource_calico_policy_read,
        update=resource_calico_policy_update,
        delete=resource_calico_policy_delete)


def d_to_policy_metadata(d):
    return api.PolicyMetadata(name=d.get("name"))


def d_to_policy_spec(d):
    return api.PolicySpec(
        order=d.get("spec.0.order"),
        selector=d.get("spec.0.selector"),
        ingress_rules=d_to_rules(d, "spec.0.ingress.0.rule"),
        egress_rules=d_to_rules(d, "spec.0.egress.0.rule"))


def set_schema_fields_for_policy_spec(policy, d):
    spec_map = {
        "selector": policy.spec.selector,
        "ingress": rules_to_block(policy.spec.ingress_rules),
        "egress": rules_to_block(policy.spec.egress_rules),
    }
    if policy.spec.order is not None:
        spec_map["order"] = policy.spec.order
    d.set("spec", [spec_map])


def resource_calico_policy_create(d, meta):
    metadata = d_to_policy_metadata(d)
    spec = d_to_policy_spec(d)

    meta.client.policies().create(api.Policy(metadata, spec))

    d.set_id(metadata.name)
    return resource_calico_policy_read(d, meta)


def resource_calico_policy_read(d, meta):
    try:
        policy = meta.client.policies().get(d_to_policy_metadata(d))
    except ResourceDoesNotExist:
        _log.info("Policy %s no longer exists", d.get("name"))
        d.set_id("")
        return

    d.set_id(policy.metadata.name)
    d.set("name", policy.metadata.name)
    set_schema_fields_for_policy_spec(policy, d)


def resource_calico_policy_update(d, meta):
    policies = meta.client.policies()
    metadata = d_to_policy_metadata(d)
    try:
        policies.get(metadata)
    except ResourceDoesNotExist:
        d.set_id("")
        return

    policies.apply(api.Policy(metadata, d_to_policy_spec(d)))


def resource_calico_policy_delete(d, meta):
    try:
        meta.client.policies().delete(d_to_policy_metadata(d))
    except ResourceDoesNotExist:
        _log.debug("Policy %s already deleted", d.get("name"))
