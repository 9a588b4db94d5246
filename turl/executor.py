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

"""Applying a `MutationSet` to a single URL."""

import logging as _logging

from .component import Component, num_components
from .engine import Engine, EngineFlag, EngineError, ComponentAbsent, Handle, DictEngine
from .errors import DuplicateComponent, EngineFailed
from .mutation import MutationSet, SetOp, AppendOp, AppendTarget, parse_set, parse_append

url_flags = EngineFlag.GUESS_SCHEME | EngineFlag.NON_SUPPORT_SCHEME

def _set(engine : Engine, handle : Handle, component : Component, value : str, flags : EngineFlag) -> None:
    try:
        engine.set(handle, component, value, flags)
    except EngineError as exc:
        raise EngineFailed(component.value, exc)

def _get_or_empty(engine : Engine, handle : Handle, component : Component) -> str:
    try:
        return engine.get(handle, component)
    except ComponentAbsent:
        return ""
    except EngineError as exc:
        raise EngineFailed(component.value, exc, True)

def apply_sets(engine : Engine, handle : Handle, sets : list[SetOp]) -> None:
    varset = [False] * num_components
    for op in sets:
        idx = op.component.index
        if varset[idx]:
            raise DuplicateComponent(op.component.value)
        varset[idx] = True

        flags = EngineFlag.NON_SUPPORT_SCHEME
        if op.encode:
            flags |= EngineFlag.URLENCODE
        _set(engine, handle, op.component, op.value, flags)

def append_path(engine : Engine, handle : Handle, segment : str) -> None:
    opath = _get_or_empty(engine, handle, Component.PATH)
    sep = "" if opath.endswith("/") else "/"
    _set(engine, handle, Component.PATH, opath + sep + segment, EngineFlag.NONE)

def append_query(engine : Engine, handle : Handle, segment : str) -> None:
    oquery = _get_or_empty(engine, handle, Component.QUERY)
    sep = "&" if oquery != "" else ""
    _set(engine, handle, Component.QUERY, oquery + sep + segment, EngineFlag.NONE)

def apply_appends(engine : Engine, handle : Handle, appends : list[AppendOp]) -> None:
    for op in appends:
        if op.target == AppendTarget.PATH:
            append_path(engine, handle, op.segment)
    for op in appends:
        if op.target == AppendTarget.QUERY:
            append_query(engine, handle, op.segment)

def execute(engine : Engine, mset : MutationSet, base : str | None) -> Handle:
    """Build a URL handle from `base` by applying `mset` to it.

       The caller owns the returned handle and must `destroy` it.
    """
    handle = engine.create()
    try:
        if base is not None:
            try:
                engine.set(handle, Component.URL, base, url_flags)
            except EngineError as exc:
                _logging.debug("ignoring base URL `%s`: %s", base, str(exc))

        if mset.redirect is not None:
            _set(engine, handle, Component.URL, mset.redirect, url_flags)

        apply_sets(engine, handle, mset.sets)
        apply_appends(engine, handle, mset.appends)
    except BaseException:
        engine.destroy(handle)
        raise
    return handle

def _run(mset : MutationSet, base : str | None, engine : Engine | None = None) -> str:
    if engine is None:
        engine = DictEngine()
    h = execute(engine, mset, base)
    try:
        return engine.get(h, Component.URL)
    finally:
        engine.destroy(h)

def test_append_path() -> None:
    e = DictEngine()
    h = e.create()
    append_path(e, h, "a")
    assert e.get(h, Component.PATH) == "/a"
    append_path(e, h, "b")
    assert e.get(h, Component.PATH) == "/a/b"
    e.set(h, Component.PATH, "/dir/")
    append_path(e, h, "c")
    assert e.get(h, Component.PATH) == "/dir/c"

def test_append_query() -> None:
    e = DictEngine()
    h = e.create()
    append_query(e, h, "k=v")
    assert e.get(h, Component.QUERY) == "k=v"
    append_query(e, h, "k2=v2")
    assert e.get(h, Component.QUERY) == "k=v&k2=v2"

    mset = MutationSet(appends=[parse_append(e, "query=a b&c")])
    assert _run(mset, "http://example.com/", e) == "http://example.com/?a%20b%26c"

def test_execute() -> None:
    e = DictEngine()

    mset = MutationSet(appends=[parse_append(e, "query=x=1"), parse_append(e, "path=b")])
    assert _run(mset, "http://example.com/a", e) == "http://example.com/a/b?x=1"

    mset = MutationSet(sets=[parse_set("scheme=https"), parse_set("host=example.com"), parse_set("path=/p")])
    assert _run(mset, None, e) == "https://example.com/p"

    mset = MutationSet(redirect="http://other.example/r", appends=[parse_append(e, "path=x")])
    assert _run(mset, "http://example.com/a", e) == "http://other.example/r/x"
    mset = MutationSet(redirect="/abs")
    assert _run(mset, "http://example.com/a?q=1", e) == "http://example.com/abs"

    # a base URL the engine rejects leaves an empty handle
    mset = MutationSet(sets=[parse_set("scheme=http"), parse_set("host=example.com")])
    assert _run(mset, "not a url", e) == "http://example.com/"

    # raw values bypass the encoding
    mset = MutationSet(sets=[parse_set("path:=/a%20b"), parse_set("query=a b")])
    assert _run(mset, "http://example.com/", e) == "http://example.com/a%20b?a%20b"

    assert e.live == 0

def test_execute_duplicate() -> None:
    e = DictEngine()
    for sets in [["host=a.example", "host=b.example"],
                 ["host=a.example", "HOST:=a.example"],
                 ["path:=x", "scheme=http", "Path=x"]]:
        mset = MutationSet(sets=[parse_set(s) for s in sets])
        try:
            execute(e, mset, "http://example.com/")
        except DuplicateComponent as exc:
            assert exc.name == sets[-1].split("=")[0].rstrip(":").lower()
        else:
            assert False, sets
    assert e.live == 0

def test_execute_engine_failure() -> None:
    e = DictEngine([Component.FRAGMENT])
    mset = MutationSet(sets=[parse_set("fragment=x")])
    try:
        execute(e, mset, "http://example.com/")
    except EngineFailed as exc:
        assert isinstance(exc.cause, EngineError)
        assert exc.what == "fragment"
    else:
        assert False

    mset = MutationSet(redirect="relative/path")
    try:
        execute(e, mset, None)
    except EngineFailed as exc:
        assert exc.what == "url"
    else:
        assert False
    assert e.live == 0

    e = DictEngine([Component.PATH])
    mset = MutationSet(appends=[parse_append(e, "path=x")])
    try:
        execute(e, mset, "http://example.com/a")
    except EngineFailed as exc:
        assert exc.what == "path"
        assert str(exc).startswith("failed to get path: ")
    else:
        assert False
    assert e.live == 0
