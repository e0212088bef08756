"""
Local device storage.

LocalStore keeps string values in a single JSON file, the way the mobile app
keeps them in AsyncStorage. PendingOrderStore is a single-slot store for the
order id of an in-flight payment.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Dict, Optional

from config import settings
from utils.logger import logger

PENDING_ORDER_KEY = 'pending_payment_order_id'
SELECTED_CURRENCY_KEY = 'user_selected_currency'
SEEN_CURRENCY_DIALOG_KEY = 'has_seen_currency_dialog'


class LocalStore:
    """
    Async key/value store persisted to a JSON file.

    Writes are serialised with an asyncio.Lock and land atomically via a
    temporary file. A missing or corrupt file reads as an empty store.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.LOCAL_STORE_FILE)
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Local storage at {self.path} is unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Local storage at {self.path} has unexpected shape, starting empty")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    async def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

    async def clear(self) -> None:
        async with self._lock:
            self._write({})

    async def get_json(self, key: str):
        """Read a JSON-encoded value; raises ValueError if the stored text is not JSON"""
        raw = await self.get_item(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value) -> None:
        await self.set_item(key, json.dumps(value, ensure_ascii=False))


class PendingOrderStore:
    """
    Single-slot store for the order id of an in-flight payment.

    put() overwrites whatever was there. compare_and_clear() only removes the
    slot if it still holds the given id, so a verification that finishes after
    a newer payment was started cannot wipe the newer id.
    """

    def __init__(self, store: LocalStore):
        self.store = store
        self._lock = asyncio.Lock()

    async def get(self) -> Optional[str]:
        return await self.store.get_item(PENDING_ORDER_KEY)

    async def put(self, order_id: str) -> None:
        async with self._lock:
            previous = await self.store.get_item(PENDING_ORDER_KEY)
            if previous and previous != order_id:
                logger.info(f"Replacing pending order {previous} with {order_id}")
            await self.store.set_item(PENDING_ORDER_KEY, order_id)

    async def clear(self) -> None:
        async with self._lock:
            await self.store.remove_item(PENDING_ORDER_KEY)

    async def compare_and_clear(self, order_id: str) -> bool:
        """Clear the slot if it still holds order_id. Returns True if cleared."""
        async with self._lock:
            current = await self.store.get_item(PENDING_ORDER_KEY)
            if current != order_id:
                return False
            await self.store.remove_item(PENDING_ORDER_KEY)
            return True
