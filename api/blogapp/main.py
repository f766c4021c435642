from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .errors import register_exception_handlers
from .middleware import SecurityHeadersMiddleware
from .routers import auth, blogs, comments, system, users
from .seed import ensure_seed_data

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

_STARTUP_COMPLETE = False


def run_migrations() -> None:
    logger.info("run_migrations: Starting...")
    try:
        alembic_cfg = _alembic_config()

        from alembic.runtime.migration import MigrationContext
        from alembic.script import ScriptDirectory

        from .db import engine

        try:
            with engine.connect() as connection:
                context = MigrationContext.configure(connection)
                current_heads = context.get_current_heads()
                current_rev = current_heads[0] if len(current_heads) == 1 else None

                script = ScriptDirectory.from_config(alembic_cfg)
                heads = script.get_heads()

                if current_rev and current_rev in heads:
                    logger.info("Database is up to date (revision: %s), skipping migrations.", current_rev)
                    return

                logger.info("Current revision(s): %s, target: %s. Running migrations...", current_heads, heads)
        finally:
            # Release pooled connections before alembic opens its own
            engine.dispose()

        command.upgrade(alembic_cfg, "head")
        logger.info("run_migrations: Completed successfully.")
    except Exception as e:
        logger.error("run_migrations: Error occurred: %s", e, exc_info=True)
        raise


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    cfg.attributes["configure_logger"] = False
    return cfg


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return
    try:
        run_migrations()
        ensure_seed_data()
        _STARTUP_COMPLETE = True
        logger.info("Startup tasks completed.")
    except Exception as e:
        logger.error("Startup tasks failed: %s", e, exc_info=True)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    # Server won't accept requests until migrations and seeding complete
    run_startup_tasks()
    logger.info("Blog API server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Blog API",
    version="1.0.0",
    description="Blogging platform API: posts, comments, likes and follows",
    lifespan=lifespan,
)

# Set CORS_ORIGINS to a comma-separated list of allowed origins in production
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost")
if cors_origins_str == "*":
    logger.warning(
        "CORS is configured to allow all origins. "
        "This is insecure for production. Set CORS_ORIGINS to specific domains."
    )
cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

app.add_middleware(SecurityHeadersMiddleware)

register_exception_handlers(app)

app.include_router(system.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(blogs.router)
app.include_router(comments.router)


def run() -> None:
    """Serve the API with uvicorn (``blogapp`` console script)."""
    import uvicorn

    uvicorn.run(
        "blogapp.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").lower(),
    )
