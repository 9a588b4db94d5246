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

"""Interface to URL engines.

   An engine owns URL parsing and un-parsing. The mutation pipeline only ever
   talks to it through `Engine`, so that it can be tested with a fake one.
"""

import abc as _abc
import enum as _enum
import typing as _t
import urllib.parse as _up

from gettext import gettext

from kisstdlib.exceptions import *

from .component import Component

class EngineFlag(_enum.Flag):
    NONE = 0
    GUESS_SCHEME = _enum.auto()
    NON_SUPPORT_SCHEME = _enum.auto()
    URLENCODE = _enum.auto()
    URLDECODE = _enum.auto()
    DEFAULT_PORT = _enum.auto()

class EngineError(Failure): pass

class ComponentAbsent(EngineError):
    """The component is legitimately unset, e.g. a URL without a query."""

    def __init__(self, component : Component) -> None:
        super().__init__(gettext("no %s"), component.value)
        self.component = component

class MalformedInput(EngineError): pass
class BadScheme(EngineError): pass
class UnsupportedScheme(EngineError): pass
class BadHostname(EngineError): pass
class BadPort(EngineError): pass
class NoScheme(EngineError): pass
class NoHost(EngineError): pass

Handle = _t.Any

class Engine(metaclass=_abc.ABCMeta):
    @_abc.abstractmethod
    def create(self) -> Handle:
        raise NotImplementedError()

    @_abc.abstractmethod
    def set(self, handle : Handle, component : Component, value : str, flags : EngineFlag = EngineFlag.NONE) -> None:
        raise NotImplementedError()

    @_abc.abstractmethod
    def get(self, handle : Handle, component : Component, flags : EngineFlag = EngineFlag.NONE) -> str:
        raise NotImplementedError()

    def destroy(self, handle : Handle) -> None:
        pass

    def escape(self, value : str) -> str:
        """Percent-encode everything but unreserved characters."""
        return _up.quote(value, safe="")

    def unescape(self, value : str) -> str:
        return _up.unquote(value)

    def get_maybe(self, handle : Handle, component : Component, flags : EngineFlag = EngineFlag.NONE) -> str | None:
        try:
            return self.get(handle, component, flags)
        except ComponentAbsent:
            return None
class DictEngine(Engine):
    """A trivial engine keeping component values in a `dict`, for testing.

       Only understands `scheme://host/path?query#fragment` URLs. Components
       listed in `failing` raise `EngineError` on every access.
    """

    def __init__(self, failing : list[Component] | None = None) -> None:
        self.failing = set(failing) if failing is not None else set()
        self.live = 0

    def create(self) -> dict[Component, str]:
        self.live += 1
        return {}

    def destroy(self, handle : dict[Component, str]) -> None:
        self.live -= 1

    def _check(self, component : Component) -> None:
        if component in self.failing:
            raise EngineError("engine failure on %s", component.value)

    def set(self, handle : dict[Component, str], component : Component, value : str, flags : EngineFlag = EngineFlag.NONE) -> None:
        self._check(component)
        if component == Component.URL:
            scheme, has_scheme, rest = value.partition("://")
            if not has_scheme:
                if value.startswith("/") and Component.HOST in handle:
                    handle.pop(Component.QUERY, None)
                    handle.pop(Component.FRAGMENT, None)
                    handle[Component.PATH] = value
                    return
                raise NoScheme("no scheme in `%s`", value)
            end = len(rest)
            for c in "/?#":
                pos = rest.find(c)
                if pos != -1 and pos < end:
                    end = pos
            host, rest = rest[:end], rest[end:]
            rest, _, fragment = rest.partition("#")
            path, _, query = rest.partition("?")
            handle.clear()
            for k, v in [(Component.SCHEME, scheme), (Component.HOST, host), (Component.PATH, path),
                         (Component.QUERY, query), (Component.FRAGMENT, fragment)]:
                if v != "":
                    handle[k] = v
            return

        if EngineFlag.URLENCODE in flags:
            value = _up.quote(value, safe="/=&")
        if value == "":
            handle.pop(component, None)
        else:
            handle[component] = value

    def get(self, handle : dict[Component, str], component : Component, flags : EngineFlag = EngineFlag.NONE) -> str:
        self._check(component)
        if component == Component.URL:
            if Component.SCHEME not in handle:
                raise NoScheme("no scheme")
            if Component.HOST not in handle:
                raise NoHost("no host")
            res = handle[Component.SCHEME] + "://" + handle[Component.HOST] + handle.get(Component.PATH, "/")
            if Component.QUERY in handle:
                res += "?" + handle[Component.QUERY]
            if Component.FRAGMENT in handle:
                res += "#" + handle[Component.FRAGMENT]
        else:
            try:
                res = handle[component]
            except KeyError:
                if component == Component.PORT and EngineFlag.DEFAULT_PORT in flags and handle.get(Component.SCHEME) == "http":
                    res = "80"
                else:
                    raise ComponentAbsent(component)

        if EngineFlag.URLDECODE in flags:
            res = self.unescape(res)
        return res

def test_DictEngine() -> None:
    e = DictEngine([Component.ZONEID])
    h = e.create()
    assert e.escape("a b/c&d=e~f.g-h_i") == "a%20b%2Fc%26d%3De~f.g-h_i"
    assert e.unescape("a%20b%2Fc") == "a b/c"

    e.set(h, Component.URL, "http://example.com/a%20b?x=1#top")
    assert e.get(h, Component.URL) == "http://example.com/a%20b?x=1#top"
    assert e.get(h, Component.PATH, EngineFlag.URLDECODE) == "/a b"
    assert e.get(h, Component.PORT, EngineFlag.DEFAULT_PORT) == "80"
    assert e.get_maybe(h, Component.PORT) is None

    try:
        e.get(h, Component.ZONEID)
    except ComponentAbsent:
        assert False
    except EngineError:
        pass
    else:
        assert False

    e.set(h, Component.QUERY, "")
    assert e.get_maybe(h, Component.QUERY) is None
    e.destroy(h)
    assert e.live == 0
