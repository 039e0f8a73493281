import logging
from pathlib import Path
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

# Load .env file BEFORE importing settings to ensure env vars are available
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.pipeline import router as pipeline_router
from .config import Settings, get_settings
from .services.capabilities import TranslationCapability, create_capability
from .services.orchestrator import PipelineOrchestrator
from .services.state import PipelineState

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info(f"Mira pipeline started (backend={app.state.capability.name}, pivot={app.state.orchestrator.pivot.value})")
    yield
    # Shutdown - close HTTP clients
    await app.state.capability.close()


def create_app(
    settings: Optional[Settings] = None,
    capability: Optional[TranslationCapability] = None,
) -> FastAPI:
    settings = settings or get_settings()
    capability = capability or create_capability(settings)
    state = PipelineState.from_settings(settings)

    app = FastAPI(title="Mira Pipeline", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.capability = capability
    app.state.pipeline_state = state
    app.state.orchestrator = PipelineOrchestrator.build(settings, capability, state)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(pipeline_router, prefix="/api")

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
