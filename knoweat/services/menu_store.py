"""
Menu history store.

Keeps the saved menus newest-first in memory and persists the whole list as
one JSON document after every change. Storage failures are soft: a failed
read starts with an empty history, a failed write leaves the in-memory list
authoritative for the session and is only logged.

Menus handed in or out are copies; history only changes through the methods
below.
"""

import logging
import threading
from typing import Optional, Sequence
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from knoweat.models.menu import Dish, Menu
from knoweat.services.store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

STORAGE_KEY = "saved_menus"

_menu_list_adapter = TypeAdapter(list[Menu])


class MenuStore:
    def __init__(self, backend: KeyValueStore):
        self._backend = backend
        self._lock = threading.RLock()
        self._menus: list[Menu] = self._load()

    @property
    def menus(self) -> list[Menu]:
        """Copies of the saved menus, newest first."""
        with self._lock:
            return [m.model_copy(deep=True) for m in self._menus]

    def get(self, menu_id: UUID) -> Optional[Menu]:
        with self._lock:
            menu = self._find(menu_id)
            return menu.model_copy(deep=True) if menu else None

    def save(self, menu: Menu) -> None:
        with self._lock:
            self._menus.insert(0, menu.model_copy(deep=True))
            self._persist()

    def delete(self, menu_id: UUID) -> bool:
        with self._lock:
            remaining = [m for m in self._menus if m.id != menu_id]
            if len(remaining) == len(self._menus):
                return False
            self._menus = remaining
            self._persist()
            return True

    def delete_all(self) -> None:
        with self._lock:
            self._menus = []
            self._persist()

    def rename(self, menu_id: UUID, new_name: str) -> Optional[Menu]:
        """
        Set a saved menu's restaurant name.

        Raises:
            ValueError: new_name is blank
        """
        name = new_name.strip()
        if not name:
            raise ValueError("Restaurant name cannot be blank")

        with self._lock:
            menu = self._find(menu_id)
            if menu is None:
                return None
            menu.restaurant = name
            self._persist()
            return menu.model_copy(deep=True)

    def update_translation(
        self, menu_id: UUID, dishes: Sequence[Dish], menu_language: str
    ) -> Optional[Menu]:
        """Replace a saved menu's dishes with retranslated ones."""
        with self._lock:
            menu = self._find(menu_id)
            if menu is None:
                return None
            menu.dishes = list(dishes)
            menu.menu_language = menu_language
            self._persist()
            return menu.model_copy(deep=True)

    def _find(self, menu_id: UUID) -> Optional[Menu]:
        return next((m for m in self._menus if m.id == menu_id), None)

    def _load(self) -> list[Menu]:
        try:
            raw = self._backend.get(STORAGE_KEY)
            if raw is None:
                return []
            return _menu_list_adapter.validate_json(raw)
        except (StoreError, ValidationError) as e:
            logger.warning("Could not load menu history, starting empty: %s", e)
            return []

    def _persist(self) -> None:
        try:
            raw = _menu_list_adapter.dump_json(self._menus, by_alias=True)
            self._backend.set(STORAGE_KEY, raw.decode("utf-8"))
        except (StoreError, ValueError) as e:
            logger.warning("Could not persist menu history: %s", e)
