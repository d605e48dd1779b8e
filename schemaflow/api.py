import hmac
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from schemaflow.config import AppConfig, get_config
from schemaflow.errors import SchemaflowError
from schemaflow.ingest import Ingestor
from schemaflow.normalization.document import Document

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-API-Token"
PROTECTED_PREFIX = "/mfrequest"

# documents the header in OpenAPI so the Swagger UI offers "Authorize";
# the check itself is the middleware below
api_token_header = APIKeyHeader(name=TOKEN_HEADER, scheme_name="ApiToken", auto_error=False)


def _token_matches(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _is_protected(path: str) -> bool:
    return path == PROTECTED_PREFIX or path.startswith(PROTECTED_PREFIX + "/")


def create_app(config: Optional[AppConfig] = None, ingestor: Optional[Ingestor] = None) -> FastAPI:
    config = config or get_config()
    ingestor = ingestor or Ingestor(config)

    # --------------------------------------------------
    # DB INIT
    # --------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await run_in_threadpool(ingestor.ensure_table)
        except SchemaflowError:
            # every write ensures the table again
            logger.exception("Table bootstrap at startup failed")
        yield

    app = FastAPI(
        title="schemaflow",
        version="0.1.0",
        lifespan=lifespan,
        swagger_ui_parameters={"persistAuthorization": True},
    )
    app.state.ingestor = ingestor

    # --------------------------------------------------
    # MIDDLEWARE
    # --------------------------------------------------
    @app.middleware("http")
    async def require_token(request: Request, call_next):
        if _is_protected(request.url.path):
            provided = request.headers.get(TOKEN_HEADER)
            if provided is None:
                return JSONResponse(status_code=401, content={"error": "Missing API token"})
            if not _token_matches(provided, config.api.token):
                return JSONResponse(status_code=401, content={"error": "Invalid API token"})
        return await call_next(request)

    # registered last so it runs first, before the token check
    @app.middleware("http")
    async def log_request(request: Request, call_next):
        query = f"?{request.url.query}" if request.url.query else ""
        logger.info("Incoming request: %s %s%s", request.method, request.url.path, query)
        return await call_next(request)

    # --------------------------------------------------
    # ERRORS
    # --------------------------------------------------
    @app.exception_handler(SchemaflowError)
    async def handle_pipeline_error(request: Request, exc: SchemaflowError):
        if exc.status_code >= 500:
            return JSONResponse(status_code=exc.status_code, content={"error": "Failed to store document"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    # --------------------------------------------------
    # ROUTES
    # --------------------------------------------------
    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post(PROTECTED_PREFIX)
    async def mfrequest(request: Request, token: Optional[str] = Depends(api_token_header)):
        document = Document.parse(await request.body())
        await run_in_threadpool(ingestor.ingest, document)

        logger.info("Incoming mfrequest stored in %s", ingestor.table_name)
        # received is the request body verbatim, never re-encoded
        body = '{"status":%s,"received":%s}' % (
            json.dumps(config.api.ack_message, ensure_ascii=False),
            document.raw,
        )
        return Response(content=body, media_type="application/json")

    return app
