"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gourmap.api import ops, search
from gourmap.api.errors import install_error_handlers
from gourmap.domain.search.keywords import get_resolver
from gourmap.infra import postgres
from gourmap.obs import init as obs_init
from gourmap.settings import settings

logger = logging.getLogger(__name__)


def _uses_postgres() -> bool:
	return settings.search_backend.lower() == "postgres"


@asynccontextmanager
async def lifespan(app: FastAPI):
	if _uses_postgres():
		await postgres.init_pool()
	# Build the alias index once at startup rather than on the first search.
	resolver = get_resolver()
	logger.info("startup backend=%s aliases=%d", settings.search_backend, len(resolver))
	try:
		yield
	finally:
		if _uses_postgres():
			await postgres.close_pool()


app = FastAPI(title="gourmap discovery", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []
# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["GET"],
	allow_headers=["*"],
)

obs_init(app)

app.include_router(search.router, tags=["search"])
app.include_router(ops.router, tags=["ops"])
