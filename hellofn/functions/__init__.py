from ..config import Settings
from ..runtime import FunctionApp
from .hello import HelloHandler


def build_app(settings: Settings) -> FunctionApp:
    app = FunctionApp(route_prefix=settings.route_prefix)
    app.http(
        "HttpTrigger",
        methods=["POST"],
        route="hello",
        auth_level="anonymous",
        handler=HelloHandler(fallback_name=settings.fallback_name),
    )
    return app
