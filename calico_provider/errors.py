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

# Exceptions raised by the provider layer.  Errors from the Calico client
# (calico_provider.libcalico.errors) are propagated unchanged.


class ProviderError(Exception):
    """
    General provider exception.
    """
    pass


class SchemaValidationError(ProviderError):
    """
    Configuration did not match a schema.  Carries every issue found.
    """
    def __init__(self, name, issues):
        self.name = name
        self.issues = issues
        super(SchemaValidationError, self).__init__(
            "%s: %s" % (name, "; ".join(issues)))
