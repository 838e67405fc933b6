# Storage module - local SQLite persistence
from .session_store import SessionStore, ActiveSession

__all__ = ['SessionStore', 'ActiveSession']
