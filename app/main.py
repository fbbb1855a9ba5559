import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from .catalogs import CatalogRegistry, Catalogs
from .config import AppSettings, load_settings
from .errors import ClassificationError, ExplorerError
from .llm import ChatClient
from .query_router import route_query
from .schemas import DetailsRequest, SearchRequest, SearchResponse


logger = logging.getLogger("uvicorn.error")

DISCONNECT_POLL_S = 0.5
CLIENT_CLOSED_REQUEST = 499
REPHRASE_MESSAGE = (
    "The AI failed to determine a valid data source or keywords from your query. Please try rephrasing."
)
MISSING_QUERY_MESSAGE = "Query is required"
MISSING_DETAILS_MESSAGE = "Dataset ID and source are required"


class ClientDisconnected(Exception):
    pass


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_chat_client(request: Request) -> ChatClient:
    return request.app.state.chat_client


def get_registry(request: Request) -> CatalogRegistry:
    return request.app.state.registry


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing, non-JSON or mistyped bodies get the same 400 as a blank field."""
    logger.info("Rejected %s body: %s", request.url.path, exc.errors())
    if request.url.path == "/api/details":
        return error_response(MISSING_DETAILS_MESSAGE, 400)
    return error_response(MISSING_QUERY_MESSAGE, 400)


async def run_until_disconnect(request: Request, work: Awaitable[Any], poll_s: float = DISCONNECT_POLL_S) -> Any:
    """Await ``work``, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_s)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                raise ClientDisconnected()
    except asyncio.CancelledError:
        task.cancel()
        raise


async def guarded(request: Request, work: Awaitable[Any], context: str) -> Any:
    try:
        return await run_until_disconnect(request, work, poll_s=request.app.state.disconnect_poll_s)
    except ClientDisconnected:
        logger.info("Client disconnected during %s; upstream work cancelled", context)
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except ExplorerError as exc:
        logger.error(
            "Error in %s endpoint: %s %s", context, exc, exc.details or "", exc_info=exc.__cause__ is not None
        )
        return error_response(exc.message, exc.status_code)
    except Exception:
        logger.exception("Unhandled error in %s endpoint", context)
        return error_response(f"Failed to complete {context} request.", 500)


async def search_pipeline(
    query: str,
    settings: AppSettings,
    chat_client: ChatClient,
    registry: CatalogRegistry,
) -> SearchResponse:
    decision = await route_query(chat_client, settings, query)
    logger.info("AI determined: Source -> %s, Keywords -> %r", decision.source, decision.keywords)
    if not decision.is_complete():
        raise ClassificationError(REPHRASE_MESSAGE)
    results = await registry.search(decision.source, decision.keywords)
    return SearchResponse(source=decision.source, results=results)


router = APIRouter()


@router.get("/")
async def index(request: Request):
    static_dir = request.app.state.static_dir
    return FileResponse(static_dir / "index.html")


@router.get("/ping")
async def ping():
    return {"message": "pong"}


@router.get("/settings")
async def get_settings_route(settings: AppSettings = Depends(get_settings)):
    return {"settings": settings.to_safe_dict()}


@router.post("/api/search")
async def search(
    payload: SearchRequest,
    request: Request,
    settings: AppSettings = Depends(get_settings),
    chat_client: ChatClient = Depends(get_chat_client),
    registry: CatalogRegistry = Depends(get_registry),
):
    query = (payload.query or "").strip()
    if not query:
        return error_response(MISSING_QUERY_MESSAGE, 400)
    result = await guarded(request, search_pipeline(query, settings, chat_client, registry), "search")
    if isinstance(result, Response):
        return result
    return result.model_dump()


@router.post("/api/details")
async def details(
    payload: DetailsRequest,
    request: Request,
    registry: CatalogRegistry = Depends(get_registry),
):
    dataset_id = (payload.id or "").strip()
    source = (payload.source or "").strip()
    if not dataset_id or not source:
        return error_response(MISSING_DETAILS_MESSAGE, 400)
    logger.info("Fetching details for %s from %s...", dataset_id, source)
    result = await guarded(request, registry.get_details(source, dataset_id), "details")
    if isinstance(result, Response):
        return result
    return result


@router.post("/api/route")
async def route(
    payload: SearchRequest,
    request: Request,
    settings: AppSettings = Depends(get_settings),
    chat_client: ChatClient = Depends(get_chat_client),
):
    """Expose the routing decision alone, without querying any catalog."""
    query = (payload.query or "").strip()
    if not query:
        return error_response(MISSING_QUERY_MESSAGE, 400)
    result = await guarded(request, route_query(chat_client, settings, query), "route")
    if isinstance(result, Response):
        return result
    return result.model_dump()


def create_app(
    settings: AppSettings,
    chat_client: Optional[ChatClient] = None,
    catalogs: Optional[Catalogs] = None,
    registry: Optional[CatalogRegistry] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not app.state.settings.openrouter_api_key:
            logger.warning("OPENROUTER_API_KEY is not set; query routing will fail")
        try:
            yield
        finally:
            await app.state.chat_client.close()
            await app.state.catalogs.close()

    app = FastAPI(title="Dataset Metadata Explorer", lifespan=lifespan)
    app.state.settings = settings
    app.state.chat_client = chat_client or ChatClient(
        settings.openrouter_base_url, settings.openrouter_api_key, timeout=settings.llm_timeout_s
    )
    app.state.catalogs = catalogs or Catalogs.from_settings(settings)
    app.state.registry = registry or app.state.catalogs.build_registry()
    app.state.static_dir = Path(__file__).parent / "web" / "static"
    app.state.disconnect_poll_s = DISCONNECT_POLL_S

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, invalid_body_handler)
    app.mount("/static", StaticFiles(directory=app.state.static_dir), name="static")
    app.include_router(router)
    return app


app = create_app(load_settings())


if __name__ == "__main__":
    import os
    import uvicorn

    settings = app.state.settings
    reload_enabled = os.getenv("EXPLORER_RELOAD", "").lower() in ("1", "true", "yes", "on")
    try:
        uvicorn.run(
            "app.main:app",
            host=settings.host,
            port=settings.port,
            reload=reload_enabled,
            log_level=settings.log_level,
        )
    except KeyboardInterrupt:
        pass
