# Copyright (c) 2017 Tigera, Inc. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or
# implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from setuptools import find_packages
from setuptools import setup

setup(
    name='terraform-provider-calico',
    packages=find_packages(),
    install_requires=[
        'docopt',
        'netaddr',
        'prettytable',
        'pykube-ng',
        'pyparsing>=3.1',
        'python-etcd',
        'PyYAML',
        'requests',
    ],
    extras_require={
        'test': [
            'mock',
            'parameterized',
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'terraform-provider-calico = calico_provider.plugin:main',
        ],
    },
    version="0.0.0",
)
