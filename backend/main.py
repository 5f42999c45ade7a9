"""
Mindful Companion - Backend Entrypoint

FastAPI application factory and server configuration.
Run with: uvicorn main:app --reload  (from the backend/ directory)
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindful import __version__
from mindful.api import routes
from mindful.config import Settings, get_settings
from mindful.core.logging import setup_structured_logging
from mindful.core.session_store import ChatSessionStore
from mindful.services.assistant import AssistantTransport, create_transport

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[AssistantTransport] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings override (environment settings if omitted)
        transport: Assistant transport override (built from settings if omitted)
    """
    settings = settings or get_settings()

    setup_structured_logging(
        level=settings.app_log_level,
        json_format=settings.log_json or settings.is_production,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup:
            - Create the assistant transport
            - Start the session store and its cleanup loop

        Shutdown:
            - Discard all sessions (nothing is persisted)
            - Close network resources
        """
        # === Startup ===
        logger.info("Mindful Companion starting in %s mode", settings.app_env)

        assistant = transport or create_transport(settings)
        store = ChatSessionStore(
            transport=assistant,
            max_sessions=settings.max_sessions,
            session_ttl_minutes=settings.session_ttl_minutes,
            cleanup_interval_seconds=settings.session_cleanup_interval_seconds,
            log_message_text=settings.log_message_text,
        )
        await store.start()

        app.state.session_store = store
        app.state.settings = settings

        logger.info(
            "Privacy: log_message_text=%s, transcript_dir=%s",
            settings.log_message_text,
            settings.transcript_dir,
        )

        yield

        # === Shutdown ===
        logger.info("Mindful Companion shutting down")
        await store.stop()
        await assistant.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Mindful Companion",
        description="Supportive chat front end with local crisis-language detection",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Routes ---
    app.include_router(routes.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root health check."""
        return {
            "service": "Mindful Companion",
            "status": "operational",
            "version": __version__,
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("main:app", host=_settings.backend_host, port=_settings.backend_port)
