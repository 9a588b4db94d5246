# Copyright (c) 2024 Jan Malakhovski <oxij@oxij.org>
#
# This file is a part of `turl` project.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <http://www.gnu.org/licenses/>.

"""Accumulated, not yet applied, URL mutations."""

import dataclasses as _dc
import enum as _enum

from .component import Component, lookup_component
from .engine import Engine, DictEngine
from .errors import CoreError, SetSyntaxError, UnknownComponent, UnsettableComponent, AppendTargetError

@_dc.dataclass
class SetOp:
    component : Component
    value : str
    encode : bool = True

class AppendTarget(_enum.Enum):
    PATH = "path"
    QUERY = "query"

@_dc.dataclass
class AppendOp:
    target : AppendTarget
    # already percent-encoded
    segment : str

@_dc.dataclass
class MutationSet:
    redirect : str | None = None
    sets : list[SetOp] = _dc.field(default_factory = list)
    appends : list[AppendOp] = _dc.field(default_factory = list)
    format : str | None = None
    decode_output : bool = False

    def appends_to(self, target : AppendTarget) -> list[AppendOp]:
        return [a for a in self.appends if a.target == target]

def parse_set(arg : str) -> SetOp:
    """Parse `component=value`, or `component:=value` to set the value as-is."""
    pos = arg.find("=")
    if pos <= 0:
        raise SetSyntaxError(arg)

    name = arg[:pos]
    encode = True
    if name.endswith(":"):
        encode = False
        name = name[:-1]

    component = lookup_component(name)
    if component == Component.URL:
        raise UnsettableComponent(name)
    return SetOp(component, arg[pos + 1:], encode)

def encode_path_segment(engine : Engine, segment : str) -> str:
    return engine.escape(segment)

def encode_query_segment(engine : Engine, segment : str) -> str:
    # the key and the value are encoded separately so that the first `=` survives
    key, has_value, value = segment.partition("=")
    if has_value:
        return engine.escape(key) + "=" + engine.escape(value)
    return engine.escape(segment)

def parse_append(engine : Engine, arg : str) -> AppendOp:
    """Parse `path=segment` or `query=segment`."""
    larg = arg.lower()
    if larg.startswith("path="):
        return AppendOp(AppendTarget.PATH, encode_path_segment(engine, arg[5:]))
    elif larg.startswith("query="):
        return AppendOp(AppendTarget.QUERY, encode_query_segment(engine, arg[6:]))
    raise AppendTargetError(arg)

def test_parse_set() -> None:
    assert parse_set("host=example.com") == SetOp(Component.HOST, "example.com", True)
    assert parse_set("HOST=example.com") == SetOp(Component.HOST, "example.com", True)
    assert parse_set("path:=/a%20b") == SetOp(Component.PATH, "/a%20b", False)
    assert parse_set("query=a=b") == SetOp(Component.QUERY, "a=b", True)
    assert parse_set("fragment=") == SetOp(Component.FRAGMENT, "", True)

    def check_fails(arg : str, exc_type : type[CoreError]) -> None:
        try:
            parse_set(arg)
        except exc_type:
            pass
        else:
            assert False, arg

    check_fails("host", SetSyntaxError)
    check_fails("=example.com", SetSyntaxError)
    check_fails("hots=example.com", UnknownComponent)
    check_fails("hos=example.com", UnknownComponent)
    check_fails("hostname=example.com", UnknownComponent)
    check_fails(":=x", UnknownComponent)
    check_fails("url=http://example.com/", UnsettableComponent)

def test_parse_append() -> None:
    e = DictEngine()
    assert parse_append(e, "path=a") == AppendOp(AppendTarget.PATH, "a")
    assert parse_append(e, "PATH=a b/c") == AppendOp(AppendTarget.PATH, "a%20b%2Fc")
    assert parse_append(e, "query=k=v") == AppendOp(AppendTarget.QUERY, "k=v")
    assert parse_append(e, "query=a b=c=d&e") == AppendOp(AppendTarget.QUERY, "a%20b=c%3Dd%26e")
    assert parse_append(e, "Query=a&b") == AppendOp(AppendTarget.QUERY, "a%26b")
    assert parse_append(e, "query==v") == AppendOp(AppendTarget.QUERY, "=v")

    for arg in ["fragment=x", "path", "paths=x", "host=example.com"]:
        try:
            parse_append(e, arg)
        except AppendTargetError as exc:
            assert exc.arg == arg
        else:
            assert False, arg

def test_MutationSet() -> None:
    e = DictEngine()
    mset = MutationSet(appends=[parse_append(e, "query=a"), parse_append(e, "path=x"), parse_append(e, "path=y")])
    assert [a.segment for a in mset.appends_to(AppendTarget.PATH)] == ["x", "y"]
    assert [a.segment for a in mset.appends_to(AppendTarget.QUERY)] == ["a"]
    assert MutationSet().sets == []
