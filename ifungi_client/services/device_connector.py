"""Device connector - links a user to a paired greenhouse"""

import asyncio
import logging
from typing import Any

from ..errors import DeviceNotFound, PermissionDenied, WriteFailure
from ..paths import greenhouse_path, user_path
from ..storage import SessionStore
from .telemetry_store import TelemetryStore

logger = logging.getLogger(__name__)

# Field of Usuarios/{uid} listing the greenhouses a user may open
ALLOWED_FIELD = "Estufas permitidas"


def is_allowed(allowed: Any, device_id: str) -> bool:
    """The permission field is either a single id or a list of ids"""
    if isinstance(allowed, str):
        return allowed == device_id
    if isinstance(allowed, (list, tuple)):
        return device_id in allowed
    return False


class DeviceConnector:
    """Runs the connect/leave steps that follow pairing"""

    def __init__(self, store: TelemetryStore, session_store: SessionStore):
        self.store = store
        self.session_store = session_store

    async def connect(self, user_id: str, device_id: str) -> str:
        """Verify access, record the connection and save the active session"""
        device_id = (device_id or "").strip()
        if not device_id:
            raise DeviceNotFound(device_id)

        logger.info(f"Connecting user {user_id} to greenhouse {device_id}")
        greenhouse, user = await asyncio.gather(
            self.store.read(greenhouse_path(device_id)),
            self.store.read(user_path(user_id)),
        )
        if not greenhouse:
            raise DeviceNotFound(device_id)
        if not isinstance(user, dict) or not is_allowed(user.get(ALLOWED_FIELD), device_id):
            raise PermissionDenied(user_id, device_id)

        await asyncio.gather(
            self.store.update(user_path(user_id), {"currentGreenhouse": device_id}),
            self.store.update(greenhouse_path(device_id), {"currentUser": user_id}),
        )
        self.session_store.save(user_id, device_id)

        logger.info(f"User {user_id} connected to greenhouse {device_id}")
        return device_id

    async def leave(self, device_id: str):
        """Forget the greenhouse in the active session and release it in the store"""
        self.session_store.clear_device()
        try:
            await self.store.update(greenhouse_path(device_id), {"currentUser": None})
        except WriteFailure as e:
            logger.error(f"Failed to release greenhouse {device_id}: {e}")
        logger.info(f"Left greenhouse {device_id}")
