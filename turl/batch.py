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

"""Running a `MutationSet` over a sequence of input URLs."""

import io as _io
import logging as _logging
import typing as _t

from .component import Component
from .engine import Engine, EngineFlag, EngineError, DictEngine
from .errors import IncompleteURL
from .executor import execute
from .mutation import MutationSet, parse_set, parse_append
from .template import render

def iter_url_lines(fobj : _t.Iterable[bytes]) -> _t.Iterator[str]:
    """Iterate over non-empty `\\n`-separated lines of a binary stream, dropping `\\r` before `\\n`."""
    for line in fobj:
        if line.endswith(b"\n"):
            line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
        if len(line) == 0:
            continue
        yield line.decode("utf-8", errors="replace")

def literal_urls(urls : list[str]) -> list[str | None]:
    """With no URLs at all, build a single one from scratch."""
    if len(urls) == 0:
        return [None]
    return list(urls)

def render_url(engine : Engine, mset : MutationSet, base : str | None) -> str:
    """Build and render one URL; raises `IncompleteURL` when there is not enough input for it."""
    handle = execute(engine, mset, base)
    try:
        if mset.format is not None:
            return render(engine, mset.format, handle, mset.decode_output)

        flags = EngineFlag.URLDECODE if mset.decode_output else EngineFlag.NONE
        try:
            return engine.get(handle, Component.URL, flags) + "\n"
        except EngineError as exc:
            raise IncompleteURL(base, exc)
    finally:
        engine.destroy(handle)

def run_batch(engine : Engine, mset : MutationSet,
              urls : _t.Iterable[str | None],
              emit : _t.Callable[[str], None]) -> int:
    """Render each of `urls` in order, returning the number of those that failed."""
    failures = 0
    for base in urls:
        try:
            emit(render_url(engine, mset, base))
        except IncompleteURL as exc:
            _logging.error("%s", str(exc))
            failures += 1
    return failures

def test_iter_url_lines() -> None:
    data = b"http://a.example/\r\n\r\n\nhttp://b.example/\n\r\nhttp://c.example/"
    assert list(iter_url_lines(_io.BytesIO(data))) == ["http://a.example/", "http://b.example/", "http://c.example/"]
    assert list(iter_url_lines(_io.BytesIO(b""))) == []
    long = b"http://example.com/" + b"x" * 10000
    assert list(iter_url_lines(_io.BytesIO(long + b"\n"))) == [long.decode("ascii")]

def test_run_batch() -> None:
    e = DictEngine()

    def run(mset : MutationSet, urls : _t.Iterable[str | None]) -> tuple[list[str], int]:
        out : list[str] = []
        failures = run_batch(e, mset, urls, out.append)
        return out, failures

    mset = MutationSet(appends=[parse_append(e, "path=b"), parse_append(e, "query=x=1")])
    assert run(mset, ["http://example.com/a"]) == (["http://example.com/a/b?x=1\n"], 0)
    assert run(mset, ["http://one.example/", "http://two.example/"]) == \
        (["http://one.example/b?x=1\n", "http://two.example/b?x=1\n"], 0)

    mset = MutationSet(sets=[parse_set("scheme=https"), parse_set("host=example.com"), parse_set("path=/p")])
    assert run(mset, literal_urls([])) == (["https://example.com/p\n"], 0)

    # incomplete URLs are reported, the rest of the batch still runs
    mset = MutationSet(sets=[parse_set("path=/p")])
    assert run(mset, ["http://example.com/", "garbage", "http://example.org/"]) == \
        (["http://example.com/p\n", "http://example.org/p\n"], 1)
    assert run(mset, literal_urls([])) == ([], 1)

    mset = MutationSet(format="{host} {query}", decode_output=True)
    assert run(mset, ["http://example.com/?a=%20b", "http://example.org/"]) == \
        (["example.com a= b\n", "example.org \n"], 0)

    mset = MutationSet(decode_output=True)
    assert run(mset, ["http://example.com/a%20b"]) == (["http://example.com/a b\n"], 0)

    assert e.live == 0
