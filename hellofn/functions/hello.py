"""The ``HttpTrigger`` function: POST /hello."""
from typing import Optional

from ..query import parse_query
from ..runtime import HttpRequest, HttpResponse, InvocationContext


class HelloHandler:
    """Greets the validated ``name`` query parameter.

    ``fallback_name`` comes from configuration at startup. Since ``name`` is
    required and non-empty it is only consulted if that rule is relaxed.
    """

    def __init__(self, fallback_name: Optional[str] = None):
        self.fallback_name = fallback_name

    def __call__(self, request: HttpRequest, context: InvocationContext) -> HttpResponse:
        context.log('Http function processed request for url "%s"', request.url)

        raw_body = request.text()

        parsed = parse_query(request.query)
        if not parsed.success:
            return HttpResponse(body=parsed.error.message, status=400)
        context.log("Parsed query: %s", parsed.data.to_wire())

        if raw_body:
            context.log("Raw body contents: %s", raw_body)

        subject = parsed.data.name or self.fallback_name or "world"
        return HttpResponse(body=f"Hello, {subject}!", status=200)
