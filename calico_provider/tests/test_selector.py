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
Tests for selector syntax checking.
"""
import unittest

from parameterized import parameterized

from calico_provider.libcalico.selector import validate_selector, BadSelector


class TestSelector(unittest.TestCase):

    @parameterized.expand([
        ("a == 'a'",),
        ('a == "a"',),
        ('a != "b"',),
        ('a in {"a", "b"}',),
        ("a not in {'d', 'e'}",),
        ("has(a)",),
        ("!has(a)",),
        ("!!has(a)",),
        ("",),
        ("   ",),
        (" all()",),
        ("a == 'a1' && b == 'b1'",),
        ("a == 'a1' || b == 'b1' && c != 'c1'",),
        ("!(a == 'a1' && b == 'b1')",),
        ("calico/k8s_ns == 'default'",),
        ("has.x == 'y'",),
        ("a=='b'&&has(c)",),
    ])
    def test_valid(self, selector):
        validate_selector(selector)

    @parameterized.expand([
        ("a ==",),
        ("a = 'b'",),
        ("has(",),
        ("has()",),
        ("a == 'b' &&",),
        ("a in 'b'",),
        ("a in {}",),
        ("(a == 'b'",),
        ("$ == 'b'",),
        ("a == 'b' c == 'd'",),
        ("all() all()",),
    ])
    def test_bad_selector(self, selector):
        self.assertRaises(BadSelector, validate_selector, selector)
