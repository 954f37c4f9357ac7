from __future__ import annotations

from typing import Optional

from common.errors import InvalidArgumentError

from .models import Item
from .record_store import RecordStore


class ItemStore(RecordStore[Item]):
    """
    General key-value items that are not tied to a request or a session.

    Unlike sessions and tokens, the caller picks the id: `get(item_id)` hands
    back an empty item under that same id when nothing usable is stored.
    Also exposes the backend's named sets for simple membership bookkeeping
    (e.g. revoked token ids).
    """

    record_type = Item

    def _create(self, record_id: Optional[str], name: str, max_age: int) -> Item:
        return Item(id=record_id or "", name=name, values={}, is_new=True, max_age=max_age)

    def get(self, item_id: str, max_age: Optional[int] = None) -> Item:
        """Return the stored item or an empty one under `item_id`. Never raises on lookup failures."""
        if not item_id:
            raise InvalidArgumentError("item_id is required")
        return self._resolve(item_id, item_id, max_age)

    # -------- Named sets --------
    def remember(self, set_name: str, member: str) -> None:
        self._backend.add_to_set(set_name, member).raise_for_status()

    def is_remembered(self, set_name: str, member: str) -> bool:
        result = self._backend.is_in_set(set_name, member)
        if result.failed:
            result.raise_for_status()
        return result.found

    def forget(self, set_name: str, member: str) -> bool:
        """Remove `member`; True if it was in the set."""
        return bool(self._backend.remove_from_set(set_name, member).raise_for_status().value)
