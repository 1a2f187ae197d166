import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from todo_api.config import Settings, get_settings
from todo_api.context import AppContext
from todo_api.errors import AppError, ErrorKind
from todo_api.schemas.common import ErrorResponse, FieldError
from todo_api.routers.auth import router as auth_router
from todo_api.routers.todos import router as todos_router
from todo_api.utils.log import configure_logging

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.EXPIRED_TOKEN: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.INTERNAL: 500,
}


def field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        # drop the "body"/"query"/"path" prefix unless it is all there is
        field = ".".join(loc[1:]) or ".".join(loc)
        message = err.get("msg", "Invalid value").removeprefix("Value error, ")
        errors.append({"field": field, "message": message})
    return errors


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        status_code = STATUS_BY_KIND.get(exc.kind, 500)
        if status_code == 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})

        body = ErrorResponse(message=exc.message)
        if exc.field:
            body.errors = [FieldError(field=exc.field, message=exc.message)]
        return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"success": False, "errors": field_errors(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    # Global handler: never leak stack traces or SQL to the client
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    context = context or AppContext.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await context.startup()
        yield
        await context.shutdown()

    app = FastAPI(
        lifespan=lifespan,
        title="Todo API",
        description="Multi-user todo lists with JWT authentication",
        version="1.0.0",
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(todos_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
