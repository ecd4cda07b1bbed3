"""ShopStream FastAPI application.

Cart and order operations processed synchronously via HTTP. Services are
built once by ``bootstrap.build_container`` and shared by every request;
each request runs inside the ordering domain's context.

The guest cart sweeper starts with the application, so it runs under
``uvicorn --reload`` and any other server just the same. Set
``SHOPSTREAM_GUEST_CART_SWEEP_SECONDS=0`` to turn it off.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bootstrap import Container, build_container
from ordering.api.routes import cart_router, order_router
from ordering.cart.sweeper import start_guest_cart_sweeper
from ordering.domain import ordering
from shared.utils.logging import bind_request_context, clear_request_context
from shared.web import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.container
    interval = container.settings.guest_cart_sweep_seconds
    app.state.sweeper = start_guest_cart_sweeper(container.cart_engine, interval) if interval > 0 else None
    try:
        yield
    finally:
        if app.state.sweeper is not None:
            app.state.sweeper.set()


def create_app(container: Container | None = None) -> FastAPI:
    app = FastAPI(
        title="ShopStream API",
        description="E-commerce platform — cart, checkout and order lifecycle",
        lifespan=lifespan,
    )
    app.state.container = container or build_container()
    app.state.sweeper = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the ordering domain context and bind request id, path and user to every log line."""
        clear_request_context()
        bind_request_context(
            request_id=request.headers.get("x-request-id") or str(uuid4()),
            path=request.url.path,
            user_id=request.headers.get("x-user-id") or request.headers.get("x-session-id"),
        )
        try:
            with ordering.domain_context():
                response = await call_next(request)
            return response
        finally:
            clear_request_context()

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(cart_router)
    app.include_router(order_router)
    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Health / root
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        settings = app.state.container.settings
        return JSONResponse(
            content={
                "status": "ok",
                "storage": "sql" if settings.database_url else "memory",
            }
        )

    return app


app = create_app()
