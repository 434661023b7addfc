"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from gourmap.obs import logging as obs_logging
from gourmap.obs import middleware
from gourmap.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	global _initialised
	if _initialised:
		return
	if settings.obs_enabled:
		obs_logging.configure_logging()
	middleware.install(app)
	_initialised = True


__all__ = ["init"]
