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
Tests for IP and CIDR parsing.
"""
import unittest

from netaddr import IPAddress, IPNetwork
from parameterized import parameterized

from calico_provider.libcalico import net
from calico_provider.libcalico.errors import ParseError


class TestNet(unittest.TestCase):

    @parameterized.expand([
        ("10.0.0.1", 4),
        (" 192.168.1.1 ", 4),
        ("fd00::1", 6),
        ("::", 6),
    ])
    def test_parse_ip(self, value, version):
        ip = net.parse_ip(value)
        self.assertEqual(ip, IPAddress(value.strip()))
        self.assertEqual(ip.version, version)

    @parameterized.expand([
        ("10.0.0.1/32",),
        ("10.0.1",),
        ("4294967295",),
        ("fd00::zz",),
        ("",),
    ])
    def test_parse_ip_invalid(self, value):
        self.assertRaises(ParseError, net.parse_ip, value)

    @parameterized.expand([
        ("10.0.0.0/8", "10.0.0.0/8"),
        ("10.1.2.3/8", "10.0.0.0/8"),
        ("192.168.0.0/16", "192.168.0.0/16"),
        ("fd00::1/64", "fd00::/64"),
    ])
    def test_parse_cidr(self, value, expected):
        self.assertEqual(net.parse_cidr(value), IPNetwork(expected))
        self.assertEqual(str(net.parse_cidr(value)), expected)

    @parameterized.expand([
        ("10.0.0.0",),
        ("10.0.0.0/33",),
        ("not/a-cidr",),
        ("",),
    ])
    def test_parse_cidr_invalid(self, value):
        self.assertRaises(ParseError, net.parse_cidr, value)

    def test_version_of(self):
        self.assertEqual(net.version_of("10.0.0.1"), 4)
        self.assertEqual(net.version_of("fd00::/64"), 6)
        self.assertEqual(net.version_of(IPNetwork("10.0.0.0/8")), 4)
        self.assertEqual(net.version_of(IPAddress("fd00::1")), 6)
