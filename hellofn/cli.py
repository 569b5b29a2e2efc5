import argparse
import os
import sys
import time
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

from . import __version__
from .config import (
    LOCAL_SETTINGS_FILE,
    SettingsError,
    load_settings,
    read_local_settings,
    write_local_settings,
)
from .functions import build_app
from .log import setup_logging
from .runtime import HttpRequest
from .server import serve as run_server
from .utils import log_path


def _settings_path(args: argparse.Namespace) -> Path:
    return Path(args.settings) if args.settings else Path.cwd() / LOCAL_SETTINGS_FILE


def _load(args: argparse.Namespace):
    return load_settings(settings_path=_settings_path(args))


def cmd_serve(args: argparse.Namespace) -> int:
    settings = _load(args)
    run_server(settings, host=args.host, port=args.port, quiet=args.quiet)
    return 0


def _split_pairs(pairs: List[str]) -> List[tuple]:
    out = []
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got '{pair}'")
        out.append((key, value))
    return out


def cmd_invoke(args: argparse.Namespace) -> int:
    settings = _load(args)
    app = build_app(settings)

    url = args.route if args.route.startswith("/") else "/" + args.route
    try:
        extra = _split_pairs(args.query)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2
    if extra:
        url += ("&" if "?" in url else "?") + urlencode(extra)

    body = (args.data or "").encode("utf-8")
    request = HttpRequest.build(method=args.method, url=url, body=body)
    _, status, _, out_body = app.handle(request)
    print(f"HTTP {status}")
    print(out_body.decode("utf-8", errors="replace"))
    return 0 if status < 400 else 1


def cmd_routes(args: argparse.Namespace) -> int:
    app = build_app(_load(args))
    rows = [(fn.name, ",".join(fn.methods), fn.path, fn.auth_level) for fn in app.functions]
    headers = ("NAME", "METHODS", "ROUTE", "AUTH")
    widths = [max(len(headers[i]), max((len(row[i]) for row in rows), default=0)) for i in range(len(headers))]

    def fmt_row(row) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip()

    print(fmt_row(headers))
    for row in rows:
        print(fmt_row(row))
    return 0


def cmd_logs(args: argparse.Namespace) -> int:
    settings = _load(args)
    lp = log_path(args.name, settings.home)
    if args.purge:
        if lp.exists():
            lp.unlink()
        print(f"Removed logs for '{args.name}'")
        return 0
    if not lp.exists():
        print(f"No logs for '{args.name}' yet at {lp}")
        return 0
    if not args.follow:
        print(lp.read_text(encoding="utf-8"), end="")
        return 0
    # tail -f
    with lp.open("r", encoding="utf-8") as f:
        f.seek(0, os.SEEK_END)
        try:
            while True:
                line = f.readline()
                if not line:
                    time.sleep(0.5)
                    continue
                print(line, end="")
        except KeyboardInterrupt:
            return 0


def cmd_settings_list(args: argparse.Namespace) -> int:
    values = read_local_settings(_settings_path(args))
    if not values:
        print(f"No values in {_settings_path(args)}")
        return 0
    for key in sorted(values):
        print(f"{key}={values[key]}")
    return 0


def cmd_settings_set(args: argparse.Namespace) -> int:
    path = _settings_path(args)
    values = read_local_settings(path)
    values[args.key] = args.value
    write_local_settings(path, values)
    print(f"Set {args.key} in {path}")
    return 0


def cmd_settings_unset(args: argparse.Namespace) -> int:
    path = _settings_path(args)
    values = read_local_settings(path)
    if args.key not in values:
        print(f"{args.key} is not set in {path}", file=sys.stderr)
        return 2
    del values[args.key]
    write_local_settings(path, values)
    print(f"Removed {args.key} from {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hellofn", description="Hello HTTP function and its local host")
    p.add_argument("--version", action="version", version=f"hellofn {__version__}")
    p.add_argument("--log-level", default="INFO", help="Root log level (default: INFO)")
    p.add_argument("--settings", default=None, help=f"Path to settings file (default: ./{LOCAL_SETTINGS_FILE})")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="Run the HTTP server")
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=7071)
    s.add_argument("--quiet", action="store_true", help="Suppress HTTP access logs")
    s.set_defaults(func=cmd_serve)

    i = sub.add_parser("invoke", help="Run one request in-process and print the response")
    i.add_argument("route", help="Request path, optionally with a query string, e.g. '/hello?name=Ada'")
    i.add_argument("-X", "--method", default="POST")
    i.add_argument("-q", "--query", action="append", default=[], metavar="KEY=VALUE", help="Extra query parameter")
    i.add_argument("-d", "--data", default=None, help="Raw request body")
    i.set_defaults(func=cmd_invoke)

    r = sub.add_parser("routes", help="List registered functions")
    r.set_defaults(func=cmd_routes)

    g = sub.add_parser("logs", help="Show, follow or purge invocation logs")
    g.add_argument("name")
    g.add_argument("-f", "--follow", action="store_true")
    g.add_argument("--purge", action="store_true", help="Delete the log file")
    g.set_defaults(func=cmd_logs)

    st = sub.add_parser("settings", help="Manage local settings values")
    st_sub = st.add_subparsers(dest="settings_cmd", required=True)
    sl = st_sub.add_parser("list", help="Show values")
    sl.set_defaults(func=cmd_settings_list)
    ss = st_sub.add_parser("set", help="Set a value")
    ss.add_argument("key")
    ss.add_argument("value")
    ss.set_defaults(func=cmd_settings_set)
    su = st_sub.add_parser("unset", help="Remove a value")
    su.add_argument("key")
    su.set_defaults(func=cmd_settings_unset)

    return p


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        setup_logging(args.log_level)
    except ValueError as e:
        parser.error(str(e))
    try:
        return int(args.func(args))
    except SettingsError as e:
        print(str(e), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
