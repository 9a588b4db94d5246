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

"""Errors raised by the mutation and rendering pipeline, with their exit codes."""

import typing as _t

from gettext import gettext

from kisstdlib.exceptions import *

# Process exit codes, stable for scripting.
EXIT_OK = 0
EXIT_FILE = 1
EXIT_APPEND = 2
EXIT_ARG = 3
EXIT_FLAG = 4
EXIT_SET = 5
EXIT_MEM = 6
EXIT_URL = 7
EXIT_INTERNAL = 8
EXIT_INTERRUPTED = 130

class CoreError(Failure):
    exit_code = EXIT_SET

class SetSyntaxError(CoreError):
    def __init__(self, arg : str) -> None:
        super().__init__(gettext("invalid `--set` syntax: %s"), arg)
        self.arg = arg

class UnknownComponent(CoreError):
    def __init__(self, name : str) -> None:
        super().__init__(gettext("unknown component: %s"), name)
        self.name = name

class DuplicateComponent(CoreError):
    def __init__(self, name : str) -> None:
        super().__init__(gettext("a component can only be set once per URL (%s)"), name)
        self.name = name

class AppendTargetError(CoreError):
    exit_code = EXIT_APPEND

    def __init__(self, arg : str) -> None:
        super().__init__(gettext("`--append` unsupported component: %s"), arg)
        self.arg = arg

class UnsettableComponent(CoreError):
    def __init__(self, name : str) -> None:
        super().__init__(gettext("component `%s` can not be set, use `--url` or `--redirect` instead"), name)
        self.name = name

class EngineFailed(CoreError):
    """An engine call failed while applying mutations."""

    def __init__(self, what : str, exc : Exception, reading : bool = False) -> None:
        if reading:
            super().__init__(gettext("failed to get %s: %s"), what, str(exc))
        else:
            super().__init__(gettext("failed to set %s: %s"), what, str(exc))
        self.what = what
        self.cause = exc

class IncompleteURL(CoreError):
    exit_code = EXIT_URL

    def __init__(self, source : str | None, exc : Exception) -> None:
        if source is None:
            super().__init__(gettext("not enough input for a URL: %s"), str(exc))
        else:
            super().__init__(gettext("not enough input for a URL: %s (from `%s`)"), str(exc), source)
        self.source = source
        self.cause = exc

class URLFileError(CoreError):
    exit_code = EXIT_FILE

    def __init__(self, path : str) -> None:
        super().__init__(gettext("`--url-file` %s not found"), path)
        self.path = path

class FlagError(CoreError):
    exit_code = EXIT_FLAG

def exit_code_of(exc : BaseException) -> int:
    code : _t.Any = getattr(exc, "exit_code", None)
    if isinstance(code, int):
        return code
    if isinstance(exc, MemoryError):
        return EXIT_MEM
    return EXIT_INTERNAL

def test_exit_codes() -> None:
    codes = [EXIT_FILE, EXIT_APPEND, EXIT_ARG, EXIT_FLAG, EXIT_SET, EXIT_MEM, EXIT_URL, EXIT_INTERNAL, EXIT_INTERRUPTED]
    assert len(set(codes)) == len(codes)
    assert EXIT_OK not in codes

    assert exit_code_of(SetSyntaxError("host")) == EXIT_SET
    assert exit_code_of(UnknownComponent("hots")) == EXIT_SET
    assert exit_code_of(DuplicateComponent("host")) == EXIT_SET
    assert exit_code_of(UnsettableComponent("url")) == EXIT_SET
    assert exit_code_of(AppendTargetError("fragment=x")) == EXIT_APPEND
    assert exit_code_of(IncompleteURL(None, ValueError("no host"))) == EXIT_URL
    assert exit_code_of(URLFileError("nope.txt")) == EXIT_FILE
    assert exit_code_of(FlagError("only one `--get` is supported")) == EXIT_FLAG
    assert exit_code_of(MemoryError()) == EXIT_MEM
    assert exit_code_of(RuntimeError()) == EXIT_INTERNAL

def test_messages() -> None:
    assert "hots" in str(UnknownComponent("hots"))
    assert "host" in str(DuplicateComponent("host"))
    assert "example.org" in str(IncompleteURL("example.org", ValueError("no scheme")))
    assert str(EngineFailed("path", ValueError("boom"))) == "failed to set path: boom"
    assert str(EngineFailed("path", ValueError("boom"), True)) == "failed to get path: boom"
