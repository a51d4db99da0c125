from __future__ import annotations

from litestar import Litestar, Request, get, route
from litestar.enums import HttpMethod
from litestar.plugins.prometheus import PrometheusConfig, PrometheusController
from litestar.response import Response

from .handler import StreamHandler

prometheus_config = PrometheusConfig(app_name="audio_stream", prefix="audio_stream")


def create_app(handler: StreamHandler | None = None) -> Litestar:
    """Create the audio streaming ASGI application."""
    if handler is None:
        handler = StreamHandler.from_env()
    stream_path = handler.settings.stream_path

    @get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # One handler for both methods, otherwise Litestar registers its own OPTIONS.
    @route(
        stream_path,
        http_method=[HttpMethod.GET, HttpMethod.OPTIONS],
        include_in_schema=False,
    )
    async def stream(request: Request) -> Response:
        if request.method == HttpMethod.OPTIONS:
            return handler.preflight()
        return await handler.handle(request)

    async def startup(app: Litestar) -> None:
        await handler.startup()

    async def shutdown(app: Litestar) -> None:
        await handler.shutdown()

    return Litestar(
        route_handlers=[health, stream, PrometheusController],
        on_startup=[startup],
        on_shutdown=[shutdown],
        middleware=[prometheus_config.middleware],
    )


app = create_app()
