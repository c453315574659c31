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
Tests for the provider definition and configuration.
"""
import os
import unittest

from mock import patch

from calico_provider import provider
from calico_provider.errors import ProviderError
from calico_provider.libcalico import api

RESOURCE_TYPES = ["calico_bgppeer", "calico_hostendpoint", "calico_ippool",
                  "calico_node", "calico_policy", "calico_profile"]


class TestProvider(unittest.TestCase):

    def test_resources(self):
        calico = provider.provider()
        self.assertEqual(sorted(calico.resources_map), RESOURCE_TYPES)
        for name in RESOURCE_TYPES:
            resource = calico.resource(name)
            for handler in (resource.create, resource.read, resource.update,
                            resource.delete):
                self.assertTrue(callable(handler))

    def test_schema_fields(self):
        calico = provider.provider()
        self.assertEqual(len(calico.schema), 15)
        for field in calico.schema.values():
            self.assertTrue(field.optional)
        self.assertEqual(calico.schema["backend_type"].default, "etcdv2")

    @patch("calico_provider.config.Client", autospec=True)
    def test_configure_etcd_defaults(self, m_client):
        calico = provider.provider()
        with patch.dict(os.environ, {}, clear=True):
            meta = calico.configure({})
        config = m_client.call_args[0][0]
        self.assertEqual(config.datastore_type, "etcdv2")
        self.assertEqual(config.etcd_config, api.EtcdConfig(
            etcd_scheme="http", etcd_authority="127.0.0.1:2379"))
        self.assertEqual(meta.client, m_client.return_value)
        self.assertEqual(meta.config, config)

    @patch("calico_provider.config.Client", autospec=True)
    def test_configure_etcd_from_env(self, m_client):
        calico = provider.provider()
        env = {"CALICO_BACKEND_ETCD_SCHEME": "https",
               "CALICO_BACKEND_ETCD_AUTHORITY": "etcd:4001"}
        with patch.dict(os.environ, env):
            calico.configure({"backend_etcd_username": "user",
                              "backend_etcd_cacertfile": "/ca"})
        etcd_config = m_client.call_args[0][0].etcd_config
        self.assertEqual(etcd_config.etcd_scheme, "https")
        self.assertEqual(etcd_config.etcd_authority, "etcd:4001")
        self.assertEqual(etcd_config.etcd_username, "user")
        self.assertEqual(etcd_config.etcd_ca_cert_file, "/ca")

    @patch("calico_provider.config.Client", autospec=True)
    def test_configure_kubernetes(self, m_client):
        calico = provider.provider()
        calico.configure({"backend_type": "kubernetes",
                          "backend_k8s_server": "https://k8s:6443",
                          "backend_k8s_token": "token",
                          "backend_k8s_ca": "/ca"})
        config = m_client.call_args[0][0]
        self.assertEqual(config.datastore_type, "kubernetes")
        self.assertEqual(config.kube_config, api.KubeConfig(
            k8s_api_endpoint="https://k8s:6443", k8s_api_token="token",
            k8s_ca_file="/ca"))

    def test_configure_unsupported_backend(self):
        calico = provider.provider()
        with self.assertRaises(ProviderError) as cm:
            calico.configure({"backend_type": "consul"})
        self.assertIn("consul", str(cm.exception))

    def test_configure_unknown_field(self):
        calico = provider.provider()
        self.assertRaises(ProviderError, calico.configure,
                          {"backend_etcd_host": "x"})
