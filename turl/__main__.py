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

import io as _io
import logging as _logging
import os as _os
import signal as _signal
import sys as _sys
import tempfile as _tempfile
import traceback as _traceback
import typing as _t

from gettext import gettext, ngettext

from kisstdlib import argparse
from kisstdlib.exceptions import *
from kisstdlib.io.stdio import *
from kisstdlib.logging import *

from .batch import iter_url_lines, literal_urls, run_batch
from .component import component_names
from .engine import Engine
from .errors import EXIT_OK, EXIT_FILE, EXIT_ARG, EXIT_FLAG, EXIT_MEM, EXIT_URL, EXIT_INTERNAL, EXIT_INTERRUPTED, FlagError, URLFileError, exit_code_of
from .mutation import MutationSet, parse_append, parse_set
from .url import URLEngine

__prog__ = "turl"

def issue(pattern : str, *args : _t.Any) -> None:
    message = pattern % args
    if stderr.isatty:
        stderr.write_str_ln("\033[31m" + message + "\033[0m")
    else:
        stderr.write_str_ln(message)
    stderr.flush()

def error(pattern : str, *args : _t.Any) -> None:
    issue(gettext("error") + ": " + pattern, *args)

def die(code : int, pattern : str, *args : _t.Any) -> _t.NoReturn:
    error(pattern, *args)
    _sys.exit(code)

def sig_handler(sig : int, frame : _t.Any) -> None:
    raise KeyboardInterrupt()

def handle_signals() -> None:
    _signal.signal(_signal.SIGINT, sig_handler)
    _signal.signal(_signal.SIGTERM, sig_handler)

def emit(data : str) -> None:
    stdout.write_str(data)
    stdout.flush()

def mk_MutationSet(cargs : _t.Any) -> MutationSet:
    return MutationSet(redirect = cargs.redirect,
                       sets = cargs.sets or [],
                       appends = cargs.appends or [],
                       format = cargs.format,
                       decode_output = cargs.urldecode)

def cmd_transform(cargs : _t.Any, engine : Engine,
                  output : _t.Callable[[str], None] = emit,
                  stdin : _t.BinaryIO | None = None) -> int:
    mset = mk_MutationSet(cargs)

    if cargs.url_file is not None:
        path = cargs.url_file
        if path == "-":
            if stdin is None:
                stdin = _sys.stdin.buffer
            failures = run_batch(engine, mset, iter_url_lines(stdin), output)
        else:
            try:
                fobj = open(path, "rb")
            except OSError:
                raise URLFileError(path)
            with fobj:
                failures = run_batch(engine, mset, iter_url_lines(fobj), output)
    else:
        failures = run_batch(engine, mset, literal_urls(cargs.urls or []), output)

    return EXIT_URL if failures > 0 else EXIT_OK

def add_doc(fmt : argparse.BetterHelpFormatter) -> None:
    _ : _t.Callable[[str], str] = gettext

    fmt.add_text(_("# URL components"))

    fmt.add_text(_("Valid names for `--set`, `--append`, and `--get` substitutions: ") + ", ".join([f"`{n}`" for n in component_names]))

    fmt.add_text(_("# Examples"))

    fmt.start_section(_("Replace the host of a URL"))
    fmt.add_code(f"{__prog__} --set host=example.com https://curl.se/docs/")
    fmt.end_section()

    fmt.start_section(_("Build a URL from components"))
    fmt.add_code(f"{__prog__} --set scheme=https --set host=example.com --set path=/index.html")
    fmt.end_section()

    fmt.start_section(_("Append a path segment and a query pair, both get URL-encoded"))
    fmt.add_code(f'{__prog__} --append path="a b" --append query="q=x y" https://example.com/dir/')
    fmt.end_section()

    fmt.start_section(_("Set a component without URL-encoding it"))
    fmt.add_code(f'{__prog__} --set "path:=/already%20encoded" https://example.com/')
    fmt.end_section()

    fmt.start_section(_("Follow a relative redirect"))
    fmt.add_code(f"{__prog__} --redirect ../other https://example.com/some/path")
    fmt.end_section()

    fmt.start_section(_("Print hosts and ports of all URLs in a file, one per line"))
    fmt.add_code(f'{__prog__} --url-file urls.txt --get "{{host}}:{{port}}"')
    fmt.end_section()

    fmt.start_section(_("Same, but reading from stdin and URL-decoding the output"))
    fmt.add_code(f'cat urls.txt | {__prog__} --url-file - --urldecode --get "{{path}}\\t{{query}}"')
    fmt.end_section()


class ArgumentParser(argparse.BetterArgumentParser):
    def error(self, message : str) -> _t.NoReturn:
        self.print_usage(_sys.stderr)
        if "expected one argument" in message:
            die(EXIT_ARG, "%s", message)
        die(EXIT_FLAG, "%s", message)

    def parse_args_in_order(self, args : list[str], option : str) -> argparse.Namespace:
        """Like `parse_args`, but feeds positional arguments to `option` instead,
           so that they get interleaved with its other values in command line order.
        """
        takes_value = set(s for s, a in self._option_string_actions.items() if a.nargs != 0)

        res : list[str] = []
        it = iter(args)
        for arg in it:
            if arg == "--":
                res += [option + "=" + a for a in it]
            elif arg.startswith("-") and arg != "-":
                res.append(arg)
                if arg in takes_value:
                    value = next(it, None)
                    if value is not None:
                        res.append(value)
            else:
                res.append(option + "=" + arg)

        return self.parse_args(res)

def append_to(cfg : argparse.Namespace, dest : str, value : _t.Any) -> None:
    items = getattr(cfg, dest, None)
    if items is None:
        items = []
        setattr(cfg, dest, items)
    items.append(value)

def make_argparser(engine : Engine) -> ArgumentParser:
    _ : _t.Callable[[str], str] = gettext

    parser = ArgumentParser(
        prog=__prog__,
        description=_("Transform URLs: set, append to, and redirect URL components, then print the resulting URLs or selected parts of them."),
        additional_sections = [add_doc],
        allow_abbrev = False,
        add_version = True,
        add_help = False)
    parser.add_argument("-h", "--help", action="store_true", help=_("show this help message and exit"))
    parser.add_argument("--markdown", action="store_true", help=_("show help messages formatted in Markdown"))

    class StoreOnce(argparse.Action):
        def __call__(self, parser : _t.Any, cfg : argparse.Namespace, value : _t.Any, option_string : _t.Optional[str] = None) -> None:
            if getattr(cfg, self.dest) is not None:
                raise FlagError(gettext("only one `%s` is supported"), option_string)
            setattr(cfg, self.dest, value)

    class AddURL(argparse.Action):
        def __call__(self, parser : _t.Any, cfg : argparse.Namespace, value : _t.Any, option_string : _t.Optional[str] = None) -> None:
            if isinstance(value, list):
                for url in value:
                    append_to(cfg, "urls", url)
            else:
                append_to(cfg, "urls", value)

    class AddSet(argparse.Action):
        def __call__(self, parser : _t.Any, cfg : argparse.Namespace, value : _t.Any, option_string : _t.Optional[str] = None) -> None:
            append_to(cfg, "sets", parse_set(value))

    class AddAppend(argparse.Action):
        def __call__(self, parser : _t.Any, cfg : argparse.Namespace, value : _t.Any, option_string : _t.Optional[str] = None) -> None:
            append_to(cfg, "appends", parse_append(engine, value))

    components = ", ".join(component_names)

    agrp = parser.add_argument_group(_("input"))
    agrp.add_argument("--url", dest="urls", metavar="URL", action=AddURL, help=_("a URL to start with; can be specified multiple times, and mixed with positional `URL`s"))
    agrp.add_argument("--url-file", metavar="FILE", action=StoreOnce, help=_("read URLs to start with from this file, one per line, `-` means stdin; can be specified at most once; when given, `URL`s are ignored"))
    agrp.add_argument("--append", dest="appends", metavar="COMPONENT=DATA", action=AddAppend, help=_("URL-encode `DATA` and append it to `COMPONENT`, which is either `path` (as a new path segment) or `query` (as a new `key=value` pair, where `key` and `value` are URL-encoded separately); can be specified multiple times"))
    agrp.add_argument("--set", dest="sets", metavar="COMPONENT=DATA", action=AddSet, help=_(f"set `COMPONENT` to URL-encoded `DATA`, or to `DATA` as-is when written as `COMPONENT:=DATA`; each component can be set at most once; `COMPONENT` is one of: {components}"))
    agrp.add_argument("--redirect", metavar="URL", action=StoreOnce, help=_("redirect the base URL to this one, which can be relative; can be specified at most once"))

    agrp = parser.add_argument_group(_("output"))
    agrp.add_argument("--get", dest="format", metavar="TEMPLATE", action=StoreOnce, help=_("instead of the whole URL, print this template with `{component}` substituted by the value of that component; `{{` prints `{`, `}}` prints `}`, and `\\n`, `\\r`, `\\t` print the corresponding control characters; can be specified at most once"))
    agrp.add_argument("--urldecode", action="store_true", help=_("URL-decode the output"))

    parser.add_argument("urls", metavar="URL", nargs="*", action=AddURL, help=_("URLs to start with, processed in command line order together with `--url` values; if none are given and `--url-file` is not specified, a single URL is built from `--set` components alone"))

    return parser

def main() -> None:
    _ : _t.Callable[[str], str] = gettext

    engine = URLEngine()
    parser = make_argparser(engine)

    try:
        cargs = parser.parse_args_in_order(_sys.argv[1:], "--url")
    except CatastrophicFailure as exc:
        die(exit_code_of(exc), "%s", str(exc))

    if cargs.help:
        if cargs.markdown:
            parser.set_formatter_class(argparse.MarkdownBetterHelpFormatter)
            print(parser.format_help(8192))
        else:
            print(parser.format_help())
        _sys.exit(0)

    _logging.basicConfig(level=_logging.WARNING,
                         stream = stderr)
    errorcnt = CounterHandler()
    logger = _logging.getLogger()
    logger.addHandler(errorcnt)

    handle_signals()

    retcode = EXIT_OK
    try:
        retcode = cmd_transform(cargs, engine)
    except KeyboardInterrupt:
        error("%s", _("Interrupted!"))
        retcode = EXIT_INTERRUPTED
    except CatastrophicFailure as exc:
        error("%s", str(exc))
        retcode = exit_code_of(exc)
    except MemoryError:
        error("%s", _("out of memory"))
        retcode = EXIT_MEM
    except Exception:
        stderr.write_str(_traceback.format_exc())
        retcode = EXIT_INTERNAL

    stdout.flush()
    stderr.flush()

    if errorcnt.warnings > 0:
        stderr.write_str_ln(ngettext("There was %d warning!", "There were %d warnings!", errorcnt.warnings) % (errorcnt.warnings,))
    if errorcnt.errors > 0:
        stderr.write_str_ln(ngettext("There was %d error!", "There were %d errors!", errorcnt.errors) % (errorcnt.errors,))
    _sys.exit(retcode)

def _transform(engine : Engine, *args : str, stdin : bytes = b"") -> tuple[list[str], int]:
    cargs = make_argparser(engine).parse_args_in_order(list(args), "--url")
    out : list[str] = []
    code = cmd_transform(cargs, engine, out.append, _io.BytesIO(stdin))
    return out, code

def test_make_argparser() -> None:
    from .errors import AppendTargetError, SetSyntaxError, UnknownComponent

    engine = URLEngine()

    def transform(*args : str) -> tuple[list[str], int]:
        return _transform(engine, *args)

    assert transform("http://example.com/a", "--append", "path=b", "--append", "query=x=1") == \
        (["http://example.com/a/b?x=1\n"], EXIT_OK)
    assert transform("--set", "scheme=https", "--set", "host=example.com", "--set", "path=/p") == \
        (["https://example.com/p\n"], EXIT_OK)
    assert transform("http://one.example/", "--set", "port=8080", "http://two.example/") == \
        (["http://one.example:8080/\n", "http://two.example:8080/\n"], EXIT_OK)
    assert transform("--url", "https://example.com/", "--get", "{scheme} {port} {query}") == \
        (["https 443 \n"], EXIT_OK)
    assert transform("--redirect", "../c", "https://example.com/a/b/") == \
        (["https://example.com/a/c\n"], EXIT_OK)
    assert transform("--urldecode", "--append", "path=a b", "https://example.com/") == \
        (["https://example.com/a b\n"], EXIT_OK)
    assert transform("--set", "path=/p") == ([], EXIT_URL)

    # positional URLs and `--url` values keep their relative order
    assert transform("http://a.example/", "--url", "http://b.example/", "--get", "{host}", "http://c.example/", "--url=http://d.example/", "--", "http://e.example/") == \
        (["a.example\n", "b.example\n", "c.example\n", "d.example\n", "e.example\n"], EXIT_OK)
    assert transform("--url", "http://b.example/", "http://a.example/", "--get", "{host}") == \
        (["b.example\n", "a.example\n"], EXIT_OK)

    # a parser does not keep operations between runs
    parser = make_argparser(engine)
    cargs1 = parser.parse_args_in_order(["--set", "port=81", "--append", "path=x", "http://a.example/"], "--url")
    cargs2 = parser.parse_args_in_order(["--set", "port=82", "http://b.example/"], "--url")
    assert len(cargs1.sets) == 1 and len(cargs2.sets) == 1
    assert len(cargs1.appends) == 1 and cargs2.appends is None
    assert cargs1.urls == ["http://a.example/"] and cargs2.urls == ["http://b.example/"]

    def check_fails(exc_type : type[CatastrophicFailure], *args : str) -> None:
        try:
            make_argparser(engine).parse_args_in_order(list(args), "--url")
        except exc_type:
            pass
        else:
            raise CatastrophicFailure("parsing %s did not fail with %s", repr(args), exc_type.__name__)

    check_fails(FlagError, "--get", "{host}", "--get", "{port}")
    check_fails(FlagError, "--redirect", "a", "--redirect", "b")
    check_fails(FlagError, "--url-file", "a", "--url-file", "b")
    check_fails(SetSyntaxError, "--set", "host")
    check_fails(UnknownComponent, "--set", "hostname=x")
    check_fails(AppendTargetError, "--append", "fragment=x")

    def exit_code(*args : str) -> _t.Any:
        try:
            make_argparser(engine).parse_args_in_order(list(args), "--url")
        except SystemExit as exc:
            return exc.code
        return None

    assert exit_code("http://example.com/", "--set") == EXIT_ARG
    assert exit_code("--get") == EXIT_ARG
    assert exit_code("--bogus", "http://example.com/") == EXIT_FLAG
    assert exit_code("-x") == EXIT_FLAG
    assert exit_code("--url", "http://example.com/") is None

def test_cmd_transform() -> None:
    engine = URLEngine()

    fileno, path = _tempfile.mkstemp(prefix = "turl_test_", suffix = ".txt")
    try:
        with _os.fdopen(fileno, "wb") as f:
            f.write(b"http://a.example/\r\n\nhttps://b.example/x\nhttp://c.example:8080/\n")

        # `--url-file` wins over literal URLs
        assert _transform(engine, "--url-file", path, "--get", "{host}:{port}", "http://ignored.example/") == \
            (["a.example:80\n", "b.example:443\n", "c.example:8080\n"], EXIT_OK)
    finally:
        _os.unlink(path)

    try:
        _transform(engine, "--url-file", path)
    except URLFileError as exc:
        assert exc.path == path
        assert exit_code_of(exc) == EXIT_FILE
    else:
        assert False

    assert _transform(engine, "--url-file", "-", "--set", "port=81", stdin=b"http://a.example/\n\nhttps://b.example/x") == \
        (["http://a.example:81/\n", "https://b.example:81/x\n"], EXIT_OK)
    assert _transform(engine, "--url-file", "-", stdin=b"") == ([], EXIT_OK)

    # incomplete inputs are skipped, the batch still runs, the exit code reflects the failure
    assert _transform(engine, "--url-file", "-", "--set", "path=/p", stdin=b"http://a.example/\nhttp://exa mple.org/\nhttp://b.example/\n") == \
        (["http://a.example/p\n", "http://b.example/p\n"], EXIT_URL)

if __name__ == "__main__":
    main()
