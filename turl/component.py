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

"""The table of addressable URL components."""

import enum as _enum

from .errors import UnknownComponent

class Component(_enum.Enum):
    URL = "url"
    SCHEME = "scheme"
    USER = "user"
    PASSWORD = "password"
    OPTIONS = "options"
    HOST = "host"
    PORT = "port"
    PATH = "path"
    QUERY = "query"
    FRAGMENT = "fragment"
    ZONEID = "zoneid"

    @property
    def index(self) -> int:
        return _component_index[self]

components : list[Component] = list(Component)
component_names : list[str] = [c.value for c in components]
num_components = len(components)

_component_index : dict[Component, int] = {c: i for i, c in enumerate(components)}

def find_component(name : str) -> Component | None:
    """Case-insensitive, length-exact component lookup."""
    for c in components:
        cname = c.value
        if len(cname) == len(name) and cname == name.lower():
            return c
    return None

def lookup_component(name : str) -> Component:
    res = find_component(name)
    if res is None:
        raise UnknownComponent(name)
    return res

def test_lookup_component() -> None:
    assert num_components == 11
    assert len(set(component_names)) == num_components

    for c in components:
        for name in [c.value, c.value.upper(), c.value.capitalize()]:
            assert lookup_component(name) is c

    for name in ["", "hos", "hostt", "shost", "host ", "paths", "ur", "zone", "port1", "fragmen"]:
        try:
            lookup_component(name)
        except UnknownComponent as exc:
            assert exc.name == name
        else:
            assert False, name

    assert [c.index for c in components] == list(range(num_components))
