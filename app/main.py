from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.errors import register_exception_handlers
from app.api.v1.router import api_router
from app.core.config import load_settings
from app.core.context import AppContext, build_context


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Build the API. Without an explicit context one is created from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        owned = context is None
        if owned:
            app.state.context = build_context(load_settings())
        yield
        if owned:
            await app.state.context.close()

    app = FastAPI(
        title="Harajuku Booking API",
        description="Quotes, availability, appointments and payment proofs",
        version="0.1.0",
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "harajuku-booking-api", "version": "0.1.0"}

    return app


app = create_app()
