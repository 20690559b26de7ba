"""
Serving of the single-page client.

Development mode forwards page and asset requests to the live-reloading
asset dev server; production mode serves the prebuilt bundle and answers
every unknown path with index.html so client-side routing works.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from starlette.responses import FileResponse, JSONResponse, Response


logger = logging.getLogger(__name__)

# Headers that describe a single hop or were invalidated by httpx decoding the body
_SKIP_RESPONSE_HEADERS = {
    "connection",
    "content-encoding",
    "content-length",
    "keep-alive",
    "transfer-encoding",
}
_SKIP_REQUEST_HEADERS = {"host", "connection", "content-length"}


def setup_dev_proxy(
    app: FastAPI,
    dev_server_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """Proxy every GET/HEAD that no API route handled to the asset dev server."""
    app.state.dev_proxy = httpx.AsyncClient(base_url=dev_server_url, transport=transport)

    @app.api_route("/{path:path}", methods=["GET", "HEAD"], include_in_schema=False)
    async def dev_server_proxy(request: Request, path: str) -> Response:
        client: httpx.AsyncClient = request.app.state.dev_proxy
        headers = {
            key: value
            for key, value in request.headers.items()
            if key.lower() not in _SKIP_REQUEST_HEADERS
        }
        try:
            upstream = await client.request(
                request.method,
                "/" + path,
                params=str(request.query_params),
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Dev server unreachable at {dev_server_url}: {e}")
            return JSONResponse(
                status_code=502,
                content={"message": f"Asset dev server unavailable at {dev_server_url}"},
            )

        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers={
                key: value
                for key, value in upstream.headers.items()
                if key.lower() not in _SKIP_RESPONSE_HEADERS
            },
        )


async def close_dev_proxy(app: FastAPI) -> None:
    client = getattr(app.state, "dev_proxy", None)
    if client is not None:
        await client.aclose()
        app.state.dev_proxy = None


def serve_static(app: FastAPI, static_dir: str) -> None:
    """Serve the built client from *static_dir*, falling back to index.html."""
    dist_path = Path(static_dir).resolve()
    if not dist_path.is_dir():
        raise RuntimeError(
            f"Could not find the build directory: {dist_path}, make sure to build the client first"
        )
    index_file = dist_path / "index.html"

    @app.get("/{path:path}", include_in_schema=False)
    async def static_files(path: str) -> FileResponse:
        if path:
            candidate = (dist_path / path).resolve()
            if candidate.is_relative_to(dist_path) and candidate.is_file():
                return FileResponse(candidate)
        return FileResponse(index_file)
