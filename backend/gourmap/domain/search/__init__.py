"""Search, landmark discovery and timeline exports."""

from .service import SearchService, reset_memory_state, seed_memory_store

__all__ = [
	"SearchService",
	"seed_memory_store",
	"reset_memory_state",
]
