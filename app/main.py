"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.routes import router as api_router
from app.core.config import settings
from app.core.security import PasswordHasher
from app.services.tokens import TokenConfig, TokenService

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)

app = FastAPI(
    title="Cognify API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Built once per process; request handlers reach them through dependencies.
app.state.token_service = TokenService(TokenConfig.from_settings(settings))
app.state.password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Cognify API"}
