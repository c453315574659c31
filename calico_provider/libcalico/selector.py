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
calico_provider.libcalico.selector
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Syntax checking for selector expressions.  Policies use selectors to pick
the endpoints they apply to and rules use them to match the source or
destination of traffic.  The dataplane evaluates them; the client only
checks them before they are written.

    label == "value"          label != "value"
    label in {"a", "b"}       label not in {"a", "b"}
    has(label)                all()
    !expr    expr && expr    expr || expr    ( expr )

An empty selector matches everything, like all().
"""
import logging
import string

from pyparsing import (DelimitedList, Forward, Keyword, Literal,
                       ParseBaseException, QuotedString, StringEnd,
                       Suppress, Word, ZeroOrMore)

_log = logging.getLogger(__name__)

# Characters allowed in label names.
LABEL_CHARS = string.ascii_letters + string.digits + "_.-/"


class BadSelector(ValueError):
    pass


def _define_grammar():
    expr = Forward()

    label = Word(LABEL_CHARS)
    quoted = QuotedString('"') | QuotedString("'")
    value_set = Suppress("{") + DelimitedList(quoted, delim=",") + \
        Suppress("}")

    comparison = (label + (Literal("==") | Literal("!=")) + quoted |
                  label + Keyword("in") + value_set |
                  label + Keyword("not") + Keyword("in") + value_set)
    has_check = Keyword("has") + Suppress("(") + label + Suppress(")")
    all_check = Keyword("all") + Suppress("(") + Suppress(")")
    group = Suppress("(") + expr + Suppress(")")

    operand = ZeroOrMore(Literal("!")) + (all_check | has_check |
                                          comparison | group)
    and_expr = operand + ZeroOrMore(Literal("&&") + operand)
    expr <<= and_expr + ZeroOrMore(Literal("||") + and_expr)
    return expr + StringEnd()


_grammar = _define_grammar()


def validate_selector(expr_str):
    """
    :param str expr_str: the selector expression.
    :raises BadSelector: if the expression does not parse.
    """
    if not expr_str.strip():
        return
    try:
        _grammar.parse_string(expr_str)
    except ParseBaseException as e:
        _log.debug("Failed to parse selector %r: %s", expr_str, e)
        raise BadSelector("invalid selector %r: %s" % (expr_str, e))
