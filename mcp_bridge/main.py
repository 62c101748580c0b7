import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import load_bridge_config
from .registry import ToolRegistry
from .router import ToolRouter
from .schemas import ToolActiveUpdate, ToolCallRequest, ToolCallResponse

load_dotenv()

logger = logging.getLogger(__name__)


def _router(request: Request) -> ToolRouter:
    router: Optional[ToolRouter] = getattr(request.app.state, "router", None)
    if router is None:
        raise HTTPException(status_code=503, detail="Tool router is not started")
    return router


def _registry(request: Request) -> ToolRegistry:
    host = _router(request).host
    if not isinstance(host, ToolRegistry):
        raise HTTPException(status_code=501, detail="Tool host does not expose a registry")
    return host


def create_app(router: Optional[ToolRouter] = None) -> FastAPI:
    """Build the HTTP app. Without a router, one is built from the bridge config at startup."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        active = router if router is not None else ToolRouter(load_bridge_config())
        app.state.router = active
        await active.start()
        logger.info("Tool router started with %d tool(s)", len(active.registrations))
        try:
            yield
        finally:
            await active.stop()

    app = FastAPI(title="MCP Bridge", version="0.1.0", lifespan=lifespan)
    app.state.router = router

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/api/tools")
    async def list_tools(request: Request) -> List[dict]:
        return _registry(request).summary()

    @app.get("/api/servers")
    async def list_servers(request: Request) -> Dict[str, bool]:
        return _router(request).pool.status()

    @app.post("/api/tools/{name}/active")
    async def set_tool_active(name: str, payload: ToolActiveUpdate, request: Request) -> JSONResponse:
        try:
            _registry(request).set_active(name, payload.active)
        except KeyError:
            raise HTTPException(status_code=404, detail="Tool not found")
        return JSONResponse({"name": name, "active": payload.active})

    @app.post("/api/tools/{name}/call", response_model=ToolCallResponse)
    async def call_tool(name: str, payload: ToolCallRequest, request: Request) -> JSONResponse:
        try:
            result = await _registry(request).execute(name, payload.arguments)
        except KeyError:
            raise HTTPException(status_code=404, detail="Tool not found")
        return JSONResponse(result.as_dict())

    return app


# Convenience for local dev server: uvicorn mcp_bridge.main:create_app --factory
def run() -> None:
    uvicorn.run(
        "mcp_bridge.main:create_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=bool(os.getenv("RELOAD", False)),
    )


if __name__ == "__main__":
    run()
