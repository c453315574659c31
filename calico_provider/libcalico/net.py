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
IP address and network helpers for the Calico API types.
"""
import netaddr
from netaddr import IPAddress, IPNetwork, AddrFormatError

from calico_provider.libcalico.errors import ParseError


def parse_ip(value):
    """
    Parse an IP address.  CIDR notation is rejected.

    :param value: the address string.
    :return: IPAddress.
    :raises ParseError: if the string is not an IPv4 or IPv6 address.
    """
    value = str(value).strip()
    if not value or not ((netaddr.valid_ipv4(value) and
                          value.count(".") == 3) or
                         netaddr.valid_ipv6(value)):
        raise ParseError("invalid IP address: %r" % value)
    return IPAddress(value)


def parse_cidr(value):
    """
    Parse a CIDR, returning the network with host bits masked off.

    :param value: the CIDR string, e.g. "10.0.0.1/8".
    :return: IPNetwork, e.g. 10.0.0.0/8.
    :raises ParseError: if the string is not a CIDR.
    """
    value = str(value).strip()
    if "/" not in value:
        raise ParseError("invalid CIDR address: %s" % value)
    try:
        return IPNetwork(value).cidr
    except (AddrFormatError, ValueError, TypeError):
        raise ParseError("invalid CIDR address: %s" % value)


def version_of(value):
    """
    :param value: an IPAddress, IPNetwork or string form of either.
    :return: 4 or 6.
    """
    if isinstance(value, (IPAddress, IPNetwork)):
        return value.version
    if "/" in str(value):
        return parse_cidr(value).version
    return parse_ip(value).version
