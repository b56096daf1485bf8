import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from planetlocal.api.router import api_router
from planetlocal.core.config import Settings
from planetlocal.core.database import GatewayConnection
from planetlocal.core.dispatcher import QueryDispatcher
from planetlocal.core.errors import QueryError

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Request-Method": "*",
    "Access-Control-Allow-Methods": "OPTIONS, GET, POST",
    "Access-Control-Allow-Headers": "*",
}


# Permissive CORS on every route; preflights never reach the router
async def cors_middleware(request: Request, call_next):
    if request.method == "OPTIONS":
        response = Response(status_code=200)
    else:
        response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


async def query_error_handler(request: Request, exc: QueryError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Unknown paths and methods get a bare 404
async def routing_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return Response(status_code=404)
    return await http_exception_handler(request, exc)


def create_app(
    settings: Optional[Settings] = None, connection: Optional[GatewayConnection] = None
) -> FastAPI:
    settings = settings or Settings()
    connection = connection or GatewayConnection(settings)

    # Open the shared connection once and close it when the server stops
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            thread_id = await connection.open()
        except Exception as error:
            logger.error(f"Error connecting: {error}")
            raise

        logger.info(
            f"planetlocal running on: http://{settings.HOST}:{settings.PORT}"
            f" | Connected to MySQL as: {thread_id}"
        )
        yield
        await connection.close()
        logger.info("planetlocal stopped")

    app = FastAPI(
        title="planetlocal",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.dispatcher = QueryDispatcher(connection)

    app.middleware("http")(cors_middleware)
    app.add_exception_handler(QueryError, query_error_handler)
    app.add_exception_handler(StarletteHTTPException, routing_error_handler)

    app.include_router(api_router)
    return app
