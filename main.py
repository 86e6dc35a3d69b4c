import inspect
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from routes.coach_route import router as coach_router
from routes.coach_ws import router as coach_ws_router
from routes.scan_route import router as scan_router
from services.coach.completion import CoachCompletionClient
from services.coach.config import CoachConfig, check_configuration, load_coach_config
from services.coach.session_store import CoachSessionStore
from utils.database_init import AsyncDatabaseInitializer

logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger("hair_coach")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite database holding the last scan session
      - the OpenAI async client (None when OPENAI_API_KEY is missing)
      - the coach session store
    and attach them to `app.state`.
    """
    config: CoachConfig = app.state.coach_config or load_coach_config()
    app.state.coach_config = config

    db_initializer = AsyncDatabaseInitializer(config.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    status = check_configuration(config)
    openai_client = app.state.openai_client
    if openai_client is None and status.configured:
        try:
            openai_client = AsyncOpenAI(api_key=config.api_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    elif openai_client is None:
        logger.warning("OpenAI client not created: %s", status.notice)
    app.state.openai_client = openai_client

    completion = CoachCompletionClient(openai_client, model=config.model, generation=config.generation)
    app.state.session_store = CoachSessionStore(config, completion)

    try:
        yield
    finally:
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    logger.warning("Error while closing OpenAI client: %s", exc)


def create_app(config: Optional[CoachConfig] = None, openai_client: Optional[AsyncOpenAI] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    `config` and `openai_client` override the environment-derived defaults.
    """
    app = FastAPI(title="Hair Coach", lifespan=lifespan)
    app.state.coach_config = config
    app.state.openai_client = openai_client

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports DB and OpenAI configuration state.
        """
        state = request.app.state
        config = state.coach_config
        status = check_configuration(config) if config is not None else None
        return {
            "ok": True,
            "db_initialized": hasattr(state, "db_initializer"),
            "openai_configured": bool(status and status.configured and state.openai_client is not None),
            "missing": status.missing if status else [],
        }

    # Register application routers
    app.include_router(coach_router)
    app.include_router(coach_ws_router)
    app.include_router(scan_router)

    return app


app = create_app()
