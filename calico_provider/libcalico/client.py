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
calico_provider.libcalico.client
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

The Calico client.  Exposes one interface per resource kind, each with
create, update, apply, get, delete and list operations, over the backend
chosen by the API configuration.
"""
import logging

from calico_provider.libcalico import api
from calico_provider.libcalico import validation
from calico_provider.libcalico.backend.etcd import EtcdBackend
from calico_provider.libcalico.backend.k8s import KubernetesBackend
from calico_provider.libcalico.backend.model import CONVERTERS
from calico_provider.libcalico.errors import (DataStoreError,
                                              ResourceDoesNotExist,
                                              ResourceAlreadyExists)

_log = logging.getLogger(__name__)


def new_backend(config):
    """
    :param config: api.CalicoAPIConfig.
    :return: the backend for the configured datastore type.
    """
    if config.datastore_type == api.DATASTORE_ETCDV2:
        return EtcdBackend(config.etcd_config)
    elif config.datastore_type == api.DATASTORE_KUBERNETES:
        return KubernetesBackend(config.kube_config)
    raise DataStoreError("Unknown datastore type: %s" %
                         config.datastore_type)


class ResourceInterface(object):
    """
    Operations on one kind of resource.
    """

    def __init__(self, backend, resource_class):
        self.backend = backend
        self.resource_class = resource_class
        self.converter = CONVERTERS[resource_class]

    def _prepare(self, resource):
        validation.validate(resource)
        return (self.converter.key(resource.metadata),
                self.converter.to_model(resource))

    def _error(self, error, metadata):
        """
        Re-key a backend error on the resource identifier.
        """
        return type(error)(metadata.identifier(), error)

    def create(self, resource):
        """
        Create a new resource.

        :raises ResourceAlreadyExists: if the resource already exists.
        """
        key, document = self._prepare(resource)
        _log.info("Creating %s", resource.metadata.identifier())
        try:
            self.backend.create(key, document)
        except ResourceAlreadyExists as e:
            raise self._error(e, resource.metadata)
        return resource

    def update(self, resource):
        """
        Update an existing resource.

        :raises ResourceDoesNotExist: if the resource does not exist.
        """
        key, document = self._prepare(resource)
        _log.info("Updating %s", resource.metadata.identifier())
        try:
            self.backend.update(key, document)
        except ResourceDoesNotExist as e:
            raise self._error(e, resource.metadata)
        return resource

    def apply(self, resource):
        """
        Create the resource, or replace it if it already exists.
        """
        key, document = self._prepare(resource)
        _log.info("Applying %s", resource.metadata.identifier())
        self.backend.apply(key, document)
        return resource

    def get(self, metadata):
        """
        :return: the resource identified by the metadata.
        :raises ResourceDoesNotExist: if the resource does not exist.
        """
        key = self.converter.key(metadata)
        try:
            document = self.backend.get(key)
        except ResourceDoesNotExist as e:
            raise self._error(e, metadata)
        return self.converter.from_model(key, document)

    def delete(self, metadata):
        """
        :raises ResourceDoesNotExist: if the resource does not exist.
        """
        key = self.converter.key(metadata)
        _log.info("Deleting %s", metadata.identifier())
        try:
            self.backend.delete(key)
        except ResourceDoesNotExist as e:
            raise self._error(e, metadata)

    def list(self, metadata=None):
        """
        :param metadata: filter; fields left unset match anything.
        :return: list of resources.
        """
        if metadata is None:
            metadata = self.resource_class().metadata
        list_key = self.converter.list_key(metadata)
        return [self.converter.from_model(key, document)
                for key, document in self.backend.list(list_key)]


class Client(object):
    """
    Calico client.

    :param config: api.CalicoAPIConfig describing the datastore.
    :param backend: backend to use instead of building one from config.
    """

    def __init__(self, config, backend=None):
        self.config = config
        self.backend = backend or new_backend(config)

    def nodes(self):
        return ResourceInterface(self.backend, api.Node)

    def bgp_peers(self):
        return ResourceInterface(self.backend, api.BGPPeer)

    def ip_pools(self):
        return ResourceInterface(self.backend, api.IPPool)

    def policies(self):
        return ResourceInterface(self.backend, api.Policy)

    def profiles(self):
        return ResourceInterface(self.backend, api.Profile)

    def host_endpoints(self):
        return ResourceInterface(self.backend, api.HostEndpoint)
