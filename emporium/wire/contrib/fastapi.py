"""
FastAPI compiler for emporium.wire.

    from emporium.wire.contrib import fastapi
    fapp = fastapi.from_application(app)
"""

from typing import Annotated, Any

import fastapi
from kungfu import Result

from emporium.wire._app import Application
from emporium.wire._endpoint import Endpoint
from emporium.wire._types import Handler
from emporium.wire.triggers.http import Path


def _make_route(req_cls: type[Any], resp_cls: type[Any], method: str, handler: Handler) -> Any:
    async def _route_handler(req: Any, response: fastapi.Response) -> Any:
        result: Result[Any, Any] = await handler(req.to_domain())
        body = resp_cls.from_domain(result)
        status_code = getattr(body, "status_code", None)
        if callable(status_code):
            response.status_code = status_code()
        return body

    if method == "GET":
        req_cls = Annotated[req_cls, fastapi.Query()]  # type: ignore[assignment]

    _route_handler.__annotations__ = {
        "req": req_cls,
        "response": fastapi.Response,
        "return": resp_cls,
    }
    return _route_handler


def compile_to_fastapi_route(endp: Endpoint) -> list[tuple[str, Path, Any, str | None]]:
    """(method, path, route function, summary) per exposure."""
    routes: list[tuple[str, Path, Any, str | None]] = []
    for trigger, codec in endp.exposures:
        method = trigger.method.upper()
        handler = _make_route(codec.request, codec.response, method, endp.handler)
        routes.append((method, trigger.path, handler, trigger.summary))
    return routes


def add_endpoint_to_app(app: fastapi.FastAPI, endp: Endpoint) -> None:
    for method, path, handler, summary in compile_to_fastapi_route(endp):
        route_method = getattr(app, method.lower(), None)
        if route_method is None:
            raise ValueError(f"Unsupported HTTP method: {method}")
        route_method(path, summary=summary)(handler)


def from_application(app: Application, **fastapi_kwargs: Any) -> fastapi.FastAPI:
    f_app = fastapi.FastAPI(title=app.title, **fastapi_kwargs)
    for endp in app.endpoints:
        add_endpoint_to_app(f_app, endp)
    return f_app


__all__ = (
    "add_endpoint_to_app",
    "from_application",
    "compile_to_fastapi_route",
)
