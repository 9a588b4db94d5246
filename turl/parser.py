# Copyright (c) 2024 Jan Malakhovski <oxij@oxij.org>
#
# This file is a part of `turl` project.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""A minimal cursor over a string, for single-pass scanners.
"""


from kisstdlib.exceptions import *

class ParseError(Failure, ValueError):
    pass

class Parser:
    """A read-only cursor over a string buffer."""

    def __init__(self, data : str) -> None:
        self.buffer = data
        self.pos = 0

    @property
    def leftovers(self) -> str:
        return self.buffer[self.pos:]

    def at_eof(self) -> bool:
        return self.pos >= len(self.buffer)

    def have_at_least(self, n : int) -> bool:
        return self.pos + n <= len(self.buffer)

    def ensure_have(self, n : int) -> None:
        if self.have_at_least(n):
            return
        raise ParseError("while parsing %s: expected %d more characters, got EOF", repr(self.buffer), n)

    def skip(self, n : int) -> None:
        self.ensure_have(n)
        self.pos += n

    def take(self, n : int) -> str:
        self.ensure_have(n)
        old_pos = self.pos
        new_pos = old_pos + n
        self.pos = new_pos
        return self.buffer[old_pos:new_pos]

    def at_string(self, s : str) -> bool:
        return self.buffer.startswith(s, self.pos)

    def opt_string(self, s : str) -> bool:
        if self.at_string(s):
            self.pos += len(s)
            return True
        return False

    def take_until_string(self, s : str) -> str:
        pos = self.buffer.find(s, self.pos)
        if pos == -1:
            pos = len(self.buffer)
        start = self.pos
        self.pos = pos
        return self.buffer[start:pos]

def test_Parser() -> None:
    p = Parser("ab{cd}e")
    assert p.take(2) == "ab"
    assert p.opt_string("{")
    assert not p.opt_string("{")
    assert p.take_until_string("}") == "cd"
    assert p.at_string("}")
    p.skip(1)
    assert p.leftovers == "e"
    assert p.take(1) == "e"
    assert p.at_eof()

    p = Parser("no closing")
    assert p.take_until_string("}") == "no closing"
    assert p.at_eof()

    try:
        p.take(1)
    except ParseError:
        pass
    else:
        assert False
