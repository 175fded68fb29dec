"""FastAPI dependencies for the AI service and the local stores."""
from functools import lru_cache

from knoweat.database import SessionLocal, init_db
from knoweat.services.ai_service import MenuAIService
from knoweat.services.menu_store import MenuStore
from knoweat.services.profile_store import ProfileStore
from knoweat.services.store import KeyValueStore, SQLKeyValueStore


@lru_cache(maxsize=None)
def get_kv_store() -> KeyValueStore:
    init_db()
    return SQLKeyValueStore(SessionLocal)


@lru_cache(maxsize=None)
def get_menu_store() -> MenuStore:
    return MenuStore(get_kv_store())


@lru_cache(maxsize=None)
def get_profile_store() -> ProfileStore:
    return ProfileStore(get_kv_store())


@lru_cache(maxsize=None)
def get_ai_service() -> MenuAIService:
    return MenuAIService()
