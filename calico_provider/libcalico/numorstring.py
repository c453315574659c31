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
calico_provider.libcalico.numorstring
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Calico API values that may be given as either a number or a string:
protocols, ports and port ranges, and AS numbers.
"""
from calico_provider.libcalico.errors import ParseError

# Protocols the dataplane can match on by name.  Numeric protocols 1-255 are
# also allowed.  We disallow 0 because the kernel cannot match on it directly.
NAMED_PROTOCOLS = set(["tcp", "udp", "icmp", "icmpv6", "sctp", "udplite"])

# Protocols that support a port match.
PORT_PROTOCOLS = set(["tcp", 6, "udp", 17, "udplite", 136, "sctp", 132])

MIN_PORT = 0
MAX_PORT = 65535
MAX_ASN = 2 ** 32 - 1


class Protocol(object):
    """
    A protocol, held either as a lower case name or as a protocol number.
    """
    def __init__(self, value):
        self.value = value

    @classmethod
    def from_string(cls, value):
        """
        Parse a protocol.  Numeric strings are converted to numbers.

        :param value: protocol name or number.
        :return: Protocol.
        :raises ParseError: if the protocol is not known.
        """
        if isinstance(value, int):
            number = value
        else:
            value = str(value).strip().lower()
            if value not in NAMED_PROTOCOLS:
                try:
                    number = int(value)
                except ValueError:
                    raise ParseError("invalid protocol: %r" % value)
            else:
                return cls(value)
        if not 1 <= number <= 255:
            raise ParseError("protocol number out of range: %s" % number)
        return cls(number)

    def is_numeric(self):
        return isinstance(self.value, int)

    def supports_ports(self):
        return self.value in PORT_PROTOCOLS

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return "Protocol(%r)" % (self.value,)

    def __eq__(self, other):
        if not isinstance(other, Protocol):
            return NotImplemented
        return self.value == other.value

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(self.value)


class Port(object):
    """
    A single port or an inclusive port range.
    """
    def __init__(self, min_port, max_port=None):
        if max_port is None:
            max_port = min_port
        self.min_port = min_port
        self.max_port = max_port

    @classmethod
    def from_string(cls, value):
        """
        Parse a port: either "N" or a range "N:M" with N < M.

        :param value: the port string (or int).
        :return: Port.
        :raises ParseError: if the string is not a valid port or range.
        """
        if isinstance(value, int):
            fields = [value]
        else:
            fields = str(value).strip().split(":")
        if len(fields) > 2:
            raise ParseError("port range unparseable: %r" % value)
        try:
            numbers = [int(f) for f in fields]
        except ValueError:
            raise ParseError("invalid port: %r" % value)
        for number in numbers:
            if not MIN_PORT <= number <= MAX_PORT:
                raise ParseError("port out of range: %r" % value)
        if len(numbers) == 2:
            if numbers[0] >= numbers[1]:
                raise ParseError("port range invalid: %r" % value)
            return cls(numbers[0], numbers[1])
        return cls(numbers[0])

    def is_range(self):
        return self.min_port != self.max_port

    def to_model(self):
        """
        :return: the datastore form of the port: an int for a single port,
        "N:M" for a range.
        """
        if self.is_range():
            return str(self)
        return self.min_port

    def __str__(self):
        if self.is_range():
            return "%d:%d" % (self.min_port, self.max_port)
        return str(self.min_port)

    def __repr__(self):
        return "Port(%r, %r)" % (self.min_port, self.max_port)

    def __eq__(self, other):
        if not isinstance(other, Port):
            return NotImplemented
        return (self.min_port, self.max_port) == (other.min_port,
                                                  other.max_port)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash((self.min_port, self.max_port))


class ASNumber(int):
    """
    A BGP AS number, 0 to 2^32-1.  Always rendered in plain notation.
    """
    @classmethod
    def from_string(cls, value):
        """
        Parse an AS number in plain ("64512") or dot ("1.10") notation.

        :param value: AS number string (or int).
        :return: ASNumber.
        :raises ParseError: if the value is not a valid AS number.
        """
        asn = str(value).strip()
        try:
            if "." in asn:
                left_asn, right_asn = asn.split(".")
                left, right = int(left_asn), int(right_asn)
                if not (0 <= left <= 65535 and 0 <= right <= 65535):
                    raise ParseError("invalid AS number: %r" % value)
                number = 65536 * left + right
            else:
                number = int(asn)
        except ValueError:
            raise ParseError("invalid AS number: %r" % value)
        if not 0 <= number <= MAX_ASN:
            raise ParseError("AS number out of range: %r" % value)
        return cls(number)

    def __str__(self):
        return "%d" % self

    def __repr__(self):
        return "ASNumber(%d)" % self
