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
Interface implemented by the datastore backends.

Backends store model documents (see model.py) under model keys.  They do
not know about API resources.
"""


class Backend(object):

    def create(self, key, document):
        """
        Store a new object.

        :raises ResourceAlreadyExists: if the key is already present.
        """
        raise NotImplementedError()

    def update(self, key, document):
        """
        Replace an existing object.

        :raises ResourceDoesNotExist: if the key is not present.
        """
        raise NotImplementedError()

    def apply(self, key, document):
        """
        Store an object, creating or replacing it.
        """
        raise NotImplementedError()

    def get(self, key):
        """
        :return: the stored document.
        :raises ResourceDoesNotExist: if the key is not present.
        """
        raise NotImplementedError()

    def delete(self, key):
        """
        :raises ResourceDoesNotExist: if the key is not present.
        """
        raise NotImplementedError()

    def list(self, list_key):
        """
        :param list_key: a key whose None fields match anything.
        :return: list of (key, document) tuples, sorted by key.
        """
        raise NotImplementedError()


def key_matches(list_key, key):
    """
    :return: True if every field set in list_key equals the one in key.
    """
    return all(want is None or want == have
               for want, have in zip(list_key, key))
