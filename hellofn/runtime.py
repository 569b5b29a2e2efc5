import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, urlparse

from .utils import log_path


logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
AUTH_LEVELS = ("anonymous",)
TEXT_PLAIN = {"Content-Type": "text/plain; charset=utf-8"}

_LOG_LOCK = threading.Lock()


class RouteError(ValueError):
    pass


def flatten_query(query: str) -> Dict[str, str]:
    # repeated keys: last one wins; "name=" is kept as an empty string
    return dict(parse_qsl(query, keep_blank_values=True))


@dataclass
class HttpRequest:
    method: str
    url: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> "HttpRequest":
        return cls(
            method=method.upper(),
            url=url,
            query=flatten_query(urlparse(url).query),
            headers=dict(headers or {}),
            body=body,
        )

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class HttpResponse:
    body: str = ""
    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class InvocationContext:
    function_name: str
    invocation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    logger: Optional[logging.Logger] = None

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = logging.getLogger(f"hellofn.function.{self.function_name}")

    def log(self, msg: str, *args: Any) -> None:
        self.logger.info(msg, *args)


Handler = Callable[[HttpRequest, InvocationContext], Any]


@dataclass(frozen=True)
class FunctionRoute:
    name: str
    route: str
    path: str
    methods: Tuple[str, ...]
    auth_level: str
    handler: Handler


class FunctionApp:
    """Registry of HTTP-triggered functions, keyed by request path."""

    def __init__(self, route_prefix: str = ""):
        self.route_prefix = route_prefix.strip("/")
        self._by_path: Dict[str, FunctionRoute] = {}

    def path_for(self, route: str) -> str:
        parts = [p for p in (self.route_prefix, route.strip("/")) if p]
        return "/" + "/".join(parts)

    def http(
        self,
        name: str,
        *,
        methods: Sequence[str],
        route: str,
        handler: Handler,
        auth_level: str = "anonymous",
    ) -> FunctionRoute:
        methods = tuple(m.upper() for m in methods)
        bad = [m for m in methods if m not in SUPPORTED_METHODS]
        if not methods or bad:
            raise RouteError(f"Unsupported methods for '{name}': {', '.join(bad) or '(none)'}")
        if auth_level not in AUTH_LEVELS:
            raise RouteError(f"Unsupported auth level for '{name}': {auth_level}")
        if any(fn.name == name for fn in self._by_path.values()):
            raise RouteError(f"Function '{name}' is already registered")
        path = self.path_for(route)
        if path in self._by_path:
            raise RouteError(f"Route {path} is already taken by '{self._by_path[path].name}'")
        fn = FunctionRoute(
            name=name,
            route=route,
            path=path,
            methods=methods,
            auth_level=auth_level,
            handler=handler,
        )
        self._by_path[path] = fn
        return fn

    @property
    def functions(self) -> List[FunctionRoute]:
        return sorted(self._by_path.values(), key=lambda fn: fn.name)

    def get(self, name: str) -> Optional[FunctionRoute]:
        for fn in self._by_path.values():
            if fn.name == name:
                return fn
        return None

    def resolve(self, path: str) -> Optional[FunctionRoute]:
        if path != "/":
            path = path.rstrip("/")
        return self._by_path.get(path)

    def handle(self, request: HttpRequest) -> Tuple[Optional[FunctionRoute], int, Dict[str, str], bytes]:
        fn = self.resolve(request.path)
        if fn is None:
            return None, 404, dict(TEXT_PLAIN), b"Not Found"
        if request.method not in fn.methods:
            headers = {**TEXT_PLAIN, "Allow": ", ".join(fn.methods)}
            return fn, 405, headers, b"Method Not Allowed"

        context = InvocationContext(function_name=fn.name)
        try:
            status, headers, body = invoke_function(fn, request, context)
        except Exception as e:
            context.logger.exception("Function '%s' failed (invocation %s)", fn.name, context.invocation_id)
            status, headers, body = 500, dict(TEXT_PLAIN), f"Error: {e}".encode()
        return fn, status, headers, body


def invoke_function(fn: FunctionRoute, request: HttpRequest, context: InvocationContext) -> Tuple[int, Dict[str, str], bytes]:
    started = time.perf_counter()
    result = fn.handler(request, context)
    status, headers, body = normalize_result(result)
    logger.debug(
        "Executed '%s' (invocation %s) -> %s in %.1fms",
        fn.name, context.invocation_id, status, (time.perf_counter() - started) * 1000,
    )
    return status, headers, body


def normalize_result(result: Any) -> Tuple[int, Dict[str, str], bytes]:
    # Accept HttpResponse, a {statusCode, headers, body} dict, or a plain str/bytes body
    if isinstance(result, HttpResponse):
        headers = {**TEXT_PLAIN, **result.headers}
        return int(result.status), headers, result.body.encode("utf-8")
    if isinstance(result, dict) and "statusCode" in result:
        status = int(result.get("statusCode", 200))
        headers = dict(result.get("headers") or {})
        body = result.get("body", b"")
        if isinstance(body, (dict, list)):
            headers = {"Content-Type": "application/json", **headers}
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return status, headers, bytes(body)
    if isinstance(result, (bytes, bytearray)):
        return 200, {"Content-Type": "application/octet-stream"}, bytes(result)
    if isinstance(result, str):
        return 200, dict(TEXT_PLAIN), result.encode("utf-8")
    raise TypeError(f"Unsupported handler result type: {type(result).__name__}")


def invocation_record(
    request: HttpRequest,
    status: int,
    headers: Dict[str, str],
    body: bytes,
) -> Dict[str, Any]:
    return {
        "timestamp": time.time(),
        "request": {
            "method": request.method,
            "url": request.url,
            "query": request.query,
            "headers": request.headers,
            "body": request.text(),
        },
        "response": {
            "status": status,
            "headers": headers,
            "bodyPreview": body[:256].decode(errors="ignore"),
        },
    }


def write_log(name: str, record: Dict[str, Any], home: Optional[Path] = None) -> None:
    path = log_path(name, home)
    path.parent.mkdir(parents=True, exist_ok=True)
    with _LOG_LOCK, path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, sort_keys=True))
        f.write("\n")
