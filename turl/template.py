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

"""Rendering of `--get` templates.

   A template is literal text with `{component}` substitutions, `{{` and `}}`
   for literal braces, and `\\r`, `\\n`, `\\t` escapes. Rendering is a single
   pass and never fails: absent components render as nothing, engine failures are
   logged, and an unterminated `{` ends the output.
"""

import logging as _logging

from .component import Component, find_component
from .engine import Engine, EngineFlag, EngineError, ComponentAbsent, Handle, DictEngine
from .parser import Parser

escapes = {
    "r": "\r",
    "n": "\n",
    "t": "\t",
}

def substitute(engine : Engine, handle : Handle, name : str, decode : bool) -> str:
    component = find_component(name)
    if component is None:
        return ""

    flags = EngineFlag.DEFAULT_PORT
    if decode:
        flags |= EngineFlag.URLDECODE

    try:
        return engine.get(handle, component, flags)
    except ComponentAbsent:
        return ""
    except EngineError as exc:
        _logging.warning("%s (%s)", str(exc), component.value)
        return ""

def render(engine : Engine, template : str, handle : Handle, decode : bool = False) -> str:
    res : list[str] = []
    p = Parser(template)
    while not p.at_eof():
        if p.opt_string("{{"):
            res.append("{")
        elif p.opt_string("}}"):
            res.append("}")
        elif p.opt_string("{"):
            name = p.take_until_string("}")
            if p.at_eof():
                break
            p.skip(1)
            res.append(substitute(engine, handle, name, decode))
        elif p.at_string("\\") and p.have_at_least(2):
            p.skip(1)
            c = p.take(1)
            try:
                res.append(escapes[c])
            except KeyError:
                res.append("\\" + c)
        else:
            res.append(p.take(1))
    res.append("\n")
    return "".join(res)

def test_render() -> None:
    e = DictEngine()
    h = e.create()
    e.set(h, Component.URL, "http://example.com/a%20b?x=1#frag")

    def check(template : str, value : str, decode : bool = False) -> None:
        res = render(e, template, h, decode)
        if res != value:
            raise AssertionError(f"while rendering {template!r}, got {res!r}, expected {value!r}")

    check("{{literal}} {host}\\n", "{literal} example.com\n\n")
    check("{{literal}} {host}", "{literal} example.com\n")
    check("", "\n")
    check("{url}", "http://example.com/a%20b?x=1#frag\n")
    check("{HOST}:{Port}{path}", "example.com:80/a%20b\n")
    check("{path}", "/a b\n", True)
    check("{scheme}://{user}{password}{host}", "http://example.com\n")
    check("[{zoneid}]", "[]\n")
    check("{hostname}{hos}{}", "\n")
    check("a\\tb\\rc", "a\tb\rc\n")
    check("a\\xb\\\\", "a\\xb\\\\\n")
    check("trailing\\", "trailing\\\n")
    check("x{host", "x\n")
    check("x{host}{", "xexample.com\n")
    check("{{{host}}}", "{example.com}\n")
    check("a}}b}", "a}b}\n")
    check("}", "}\n")

def test_render_absent_and_failing() -> None:
    e = DictEngine([Component.FRAGMENT])
    h = e.create()
    e.set(h, Component.URL, "http://example.com/")
    assert render(e, "{query}", h) == "\n"
    assert render(e, "<{fragment}>{host}", h) == "<>example.com\n"

    class Records(_logging.Handler):
        def __init__(self) -> None:
            super().__init__(_logging.DEBUG)
            self.records : list[_logging.LogRecord] = []

        def emit(self, record : _logging.LogRecord) -> None:
            self.records.append(record)

    handler = Records()
    logger = _logging.getLogger()
    logger.addHandler(handler)
    try:
        render(e, "{query}{host}", h)
        assert handler.records == []

        render(e, "{Fragment}", h)
    finally:
        logger.removeHandler(handler)

    assert len(handler.records) == 1
    record = handler.records[0]
    assert record.levelno == _logging.WARNING
    message = record.getMessage()
    assert "fragment" in message
    assert "engine failure on fragment" in message
