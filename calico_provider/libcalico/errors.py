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

# The various Exceptions that can be raised by the Calico client are
# collected here.


class DataStoreError(Exception):
    """
    General Datastore exception.
    """
    pass


class ResourceDoesNotExist(DataStoreError):
    """
    The resource identified by the supplied metadata is not in the datastore.
    """
    def __init__(self, identifier, err=None):
        self.identifier = identifier
        self.err = err
        super(ResourceDoesNotExist, self).__init__(
            "resource does not exist: %s" % (identifier,))


class ResourceAlreadyExists(DataStoreError):
    """
    Attempted to create a resource that is already in the datastore.
    """
    def __init__(self, identifier, err=None):
        self.identifier = identifier
        self.err = err
        super(ResourceAlreadyExists, self).__init__(
            "resource already exists: %s" % (identifier,))


class ValidationError(Exception):
    """
    A resource failed validation before being written to the datastore.
    """
    def __init__(self, identifier, issues):
        self.identifier = identifier
        self.issues = issues
        super(ValidationError, self).__init__(
            "invalid resource %s: %s" % (identifier, "; ".join(issues)))


class ParseError(ValueError):
    """
    A string could not be parsed into the requested Calico type.
    """
    pass
