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
calico_provider.provider
~~~~~~~~~~~~~~~~~~~~~~~~

The Calico provider: datastore settings and the resource types served.
"""
import logging

from calico_provider import schema
from calico_provider.config import Config
from calico_provider.errors import ProviderError
from calico_provider.libcalico import api
from calico_provider.resource_calico_bgppeer import resource_calico_bgppeer
from calico_provider.resource_calico_hostendpoint import \
    resource_calico_hostendpoint
from calico_provider.resource_calico_ippool import resource_calico_ippool
from calico_provider.resource_calico_node import resource_calico_node
from calico_provider.resource_calico_policy import resource_calico_policy
from calico_provider.resource_calico_profile import resource_calico_profile

_log = logging.getLogger(__name__)


def _string(description, default="", default_func=None):
    if default_func is not None:
        default = None
    return schema.Schema(schema.TYPE_STRING, optional=True, default=default,
                         default_func=default_func, description=description)


def provider():
    """
    :return: the provider definition.
    """
    provider_schema = {
        "backend_type": _string("Either etcdv2 or kubernetes",
                                default=api.DATASTORE_ETCDV2),
        "backend_etcd_scheme": _string(
            "default: http",
            default_func=schema.env_default_func(
                "CALICO_BACKEND_ETCD_SCHEME", "http")),
        "backend_etcd_authority": _string(
            "default: 127.0.0.1:2379",
            default_func=schema.env_default_func(
                "CALICO_BACKEND_ETCD_AUTHORITY", "127.0.0.1:2379")),
        "backend_etcd_endpoints": _string(
            "multiple etcd endpoints separated by comma"),
        "backend_etcd_username": _string("Etcd username"),
        "backend_etcd_password": _string("Etcd password"),
        "backend_etcd_keyfile": _string("File location keyfile"),
        "backend_etcd_certfile": _string("File location certfile"),
        "backend_etcd_cacertfile": _string("File location cacert"),
        "backend_k8s_configfile": _string("Kubeconfig file location"),
        "backend_k8s_server": _string("Kubernetes API server URL"),
        "backend_k8s_clientcert": _string("Kubernetes client certificate"),
        "backend_k8s_clientkey": _string("Kubernetes client key"),
        "backend_k8s_ca": _string("Kubernetes certificate authority"),
        "backend_k8s_token": _string("Kubernetes bearer token"),
    }
    resources_map = {
        "calico_hostendpoint": resource_calico_hostendpoint(),
        "calico_profile": resource_calico_profile(),
        "calico_policy": resource_calico_policy(),
        "calico_ippool": resource_calico_ippool(),
        "calico_bgppeer": resource_calico_bgppeer(),
        "calico_node": resource_calico_node(),
    }
    return schema.Provider(provider_schema, resources_map,
                           provider_configure)


def provider_configure(d):
    """
    Build the Calico client from the provider configuration.

    :param d: ResourceData over the provider configuration.
    :return: Config, passed to every resource handler as meta.
    """
    backend_type = d.get("backend_type")
    if backend_type == api.DATASTORE_ETCDV2:
        calico_config = api.CalicoAPIConfig(
            datastore_type=backend_type,
            etcd_config=api.EtcdConfig(
                etcd_scheme=d.get("backend_etcd_scheme"),
                etcd_authority=d.get("backend_etcd_authority"),
                etcd_endpoints=d.get("backend_etcd_endpoints"),
                etcd_username=d.get("backend_etcd_username"),
                etcd_password=d.get("backend_etcd_password"),
                etcd_key_file=d.get("backend_etcd_keyfile"),
                etcd_cert_file=d.get("backend_etcd_certfile"),
                etcd_ca_cert_file=d.get("backend_etcd_cacertfile")))
    elif backend_type == api.DATASTORE_KUBERNETES:
        calico_config = api.CalicoAPIConfig(
            datastore_type=backend_type,
            kube_config=api.KubeConfig(
                kubeconfig=d.get("backend_k8s_configfile"),
                k8s_api_endpoint=d.get("backend_k8s_server"),
                k8s_cert_file=d.get("backend_k8s_clientcert"),
                k8s_key_file=d.get("backend_k8s_clientkey"),
                k8s_ca_file=d.get("backend_k8s_ca"),
                k8s_api_token=d.get("backend_k8s_token")))
    else:
        raise ProviderError("backend_type %r is not supported; use one of "
                            "%s" % (backend_type,
                                    ", ".join(api.DATASTORE_TYPES)))

    config = Config(calico_config)
    config.load_and_validate()
    _log.info("Configured: %s backend", backend_type)
    return config
