"""Telemetry store adapter - abstracts Firebase Realtime Database operations"""

import asyncio
import copy
import functools
import logging
import os
from typing import Any, Callable, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, db

from .. import config
from ..errors import ReadFailure, StoreNotConnected, SubscriptionError, WriteFailure

logger = logging.getLogger(__name__)

ValueCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


def split_path(path: str) -> List[str]:
    """Split a hierarchical store path into its non-empty segments"""
    return [part for part in str(path).split("/") if part]


def join_path(*parts: str) -> str:
    segments = []
    for part in parts:
        segments.extend(split_path(part))
    return "/".join(segments)


def last_by_key(value: Any, limit: Optional[int]) -> Any:
    """Keep only the last `limit` children ordered by key"""
    if limit is None or not isinstance(value, dict):
        return value
    keys = sorted(value.keys())[-limit:] if limit > 0 else []
    return {key: value[key] for key in keys}


class Subscription:
    """Handle for one live subscription; close() is idempotent"""

    def __init__(self, path: str, closer: Callable[[], None] = None):
        self.path = path
        self._closer = closer
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self._closer is not None:
            try:
                self._closer()
            except Exception as e:
                logger.warning(f"Error closing subscription to {self.path}: {e}")
        logger.debug(f"Subscription closed: {self.path}")


class TelemetryStore:
    """Path-keyed subscribe / read / partial-update interface to the realtime store"""

    def subscribe(
        self,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback = None,
        limit_to_last: Optional[int] = None,
    ) -> Subscription:
        """Deliver the whole value at `path` now and after every change.

        Callbacks always run on the event loop that called subscribe().
        With `limit_to_last`, only the last N children ordered by key are
        delivered. A missing node is delivered as None.
        """
        raise NotImplementedError

    async def read(self, path: str, limit_to_last: Optional[int] = None) -> Any:
        raise NotImplementedError

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Partial update: write only the given (possibly nested 'a/b') fields"""
        raise NotImplementedError


class FirebaseTelemetryStore(TelemetryStore):
    """TelemetryStore backed by firebase_admin.db"""

    def __init__(self, credentials_path: str = None, database_url: str = None):
        self.credentials_path = credentials_path or config.FIREBASE_CREDENTIALS_PATH
        self.database_url = database_url or config.FIREBASE_DATABASE_URL
        self.connected = False
        self._subscriptions: List[Subscription] = []

        logger.info(f"Telemetry store initialized (database: {self.database_url})")

    def connect(self):
        """Initialize Firebase connection"""
        try:
            if not firebase_admin._apps:
                cred_path = self.credentials_path

                logger.info(f"Loading Firebase credentials from: {cred_path}")

                if not os.path.exists(cred_path):
                    if not os.path.isabs(cred_path):
                        abs_path = os.path.expanduser(f"~/{cred_path}")
                        if os.path.exists(abs_path):
                            cred_path = abs_path
                        else:
                            raise FileNotFoundError(f"Firebase credentials not found at {cred_path} or {abs_path}")
                    else:
                        raise FileNotFoundError(f"Firebase credentials not found at {cred_path}")

                if not os.access(cred_path, os.R_OK):
                    raise PermissionError(f"No read permission for Firebase credentials at {cred_path}")

                cred = credentials.Certificate(cred_path)
                firebase_admin.initialize_app(cred, {
                    'databaseURL': self.database_url
                })

            self.connected = True
            logger.info("Connected to Firebase successfully")

        except Exception as e:
            logger.error(f"Failed to connect to Firebase: {e}", exc_info=True)
            raise

    def disconnect(self):
        """Close every open subscription"""
        for subscription in list(self._subscriptions):
            subscription.close()
        self._subscriptions.clear()
        if self.connected:
            self.connected = False
            logger.info("Disconnected from Firebase")

    def _require_connection(self):
        if not self.connected:
            raise StoreNotConnected("Telemetry store is not connected")

    def subscribe(self, path, on_value, on_error=None, limit_to_last=None):
        self._require_connection()
        loop = asyncio.get_running_loop()
        ref = db.reference(path)
        snapshot = {"value": None}
        subscription = Subscription(path)

        def deliver(value):
            if not subscription.closed:
                on_value(value)

        def fail(error):
            if not subscription.closed and on_error is not None:
                on_error(error)

        def listener(event):
            # Runs on the Firebase listener thread
            try:
                snapshot["value"] = apply_event(snapshot["value"], event.event_type, event.path, event.data)
                value = copy.deepcopy(last_by_key(snapshot["value"], limit_to_last))
            except Exception as e:
                logger.error(f"Bad event on {path}: {e}", exc_info=True)
                loop.call_soon_threadsafe(fail, SubscriptionError(path, e))
                return
            loop.call_soon_threadsafe(deliver, value)

        try:
            registration = ref.listen(listener)
        except Exception as e:
            logger.error(f"Failed to subscribe to {path}: {e}", exc_info=True)
            loop.call_soon(fail, SubscriptionError(path, e))
            return subscription

        subscription._closer = functools.partial(self._release, subscription, registration)
        self._subscriptions.append(subscription)
        logger.info(f"Subscribed to {path}")
        return subscription

    def _release(self, subscription: Subscription, registration):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            registration.close()
            return
        # close() joins the listener thread
        future = loop.run_in_executor(None, registration.close)
        future.add_done_callback(functools.partial(self._log_close_error, subscription.path))

    @staticmethod
    def _log_close_error(path: str, future: asyncio.Future):
        if not future.cancelled() and future.exception() is not None:
            logger.warning(f"Error closing listener on {path}: {future.exception()}")

    def _get(self, path, limit_to_last):
        ref = db.reference(path)
        if limit_to_last is not None:
            return ref.order_by_key().limit_to_last(limit_to_last).get()
        return ref.get()

    async def read(self, path, limit_to_last=None):
        self._require_connection()
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(self._get, path, limit_to_last))
        except Exception as e:
            logger.error(f"Failed to read {path}: {e}")
            raise ReadFailure(path, e) from e

    async def update(self, path, fields):
        self._require_connection()
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, db.reference(path).update, dict(fields))
            logger.debug(f"Updated {path}: {fields}")
        except Exception as e:
            logger.error(f"Failed to update {path}: {e}")
            raise WriteFailure(path, e) from e


def apply_event(current: Any, event_type: str, path: str, data: Any) -> Any:
    """Apply a 'put' or 'patch' stream event to a locally held snapshot"""
    segments = split_path(path)
    if event_type == "patch":
        for key, value in (data or {}).items():
            current = _set_in(current, segments + split_path(key), value)
        return current
    return _set_in(current, segments, data)


def _set_in(node: Any, segments: List[str], value: Any) -> Any:
    if not segments:
        return copy.deepcopy(value)
    node = dict(node) if isinstance(node, dict) else {}
    head, rest = segments[0], segments[1:]
    child = _set_in(node.get(head), rest, value)
    if child is None or child == {}:
        node.pop(head, None)
    else:
        node[head] = child
    return node or None


def _get_in(node: Any, segments: List[str]) -> Any:
    for segment in segments:
        if not isinstance(node, dict):
            return None
        node = node.get(segment)
    return node


class InMemoryTelemetryStore(TelemetryStore):
    """Process-local store with the same delivery semantics as the Firebase one.

    Used by the tests and by `main.py --demo`. Writes from the greenhouse side
    go through set(); client writes go through update().
    """

    def __init__(self, data: Dict[str, Any] = None):
        self._root: Any = copy.deepcopy(data) if data else None
        self._listeners: List[tuple] = []
        self.fail_writes = False
        self.fail_reads = False
        self.failing_paths = set()
        self.writes: List[tuple] = []

    def subscribe(self, path, on_value, on_error=None, limit_to_last=None):
        loop = asyncio.get_running_loop()
        subscription = Subscription(path)
        normalized = join_path(path)

        if normalized in self.failing_paths:
            def fail():
                if not subscription.closed and on_error is not None:
                    on_error(SubscriptionError(path, PermissionError("permission denied")))
            loop.call_soon(fail)
            return subscription

        entry = (normalized, on_value, limit_to_last, loop, subscription)
        self._listeners.append(entry)
        subscription._closer = functools.partial(self._remove_listener, entry)
        self._schedule(entry)
        return subscription

    def _remove_listener(self, entry):
        if entry in self._listeners:
            self._listeners.remove(entry)

    def _schedule(self, entry):
        normalized, on_value, limit, loop, subscription = entry
        value = last_by_key(copy.deepcopy(_get_in(self._root, split_path(normalized))), limit)

        def deliver():
            if not subscription.closed:
                on_value(value)

        loop.call_soon(deliver)

    def _notify(self, changed: str):
        changed_segments = split_path(changed)
        for entry in list(self._listeners):
            segments = split_path(entry[0])
            shortest = min(len(segments), len(changed_segments))
            if segments[:shortest] == changed_segments[:shortest]:
                self._schedule(entry)

    def get(self, path: str = "") -> Any:
        return copy.deepcopy(_get_in(self._root, split_path(path)))

    def set(self, path: str, value: Any):
        """Overwrite the node at `path` (greenhouse-side write)"""
        self._root = _set_in(self._root, split_path(path), value)
        self._notify(path)

    async def read(self, path, limit_to_last=None):
        await asyncio.sleep(0)
        if self.fail_reads:
            raise ReadFailure(path, ConnectionError("store unreachable"))
        return last_by_key(self.get(path), limit_to_last)

    async def update(self, path, fields):
        await asyncio.sleep(0)
        if self.fail_writes:
            raise WriteFailure(path, ConnectionError("write rejected"))
        self.writes.append((join_path(path), dict(fields)))
        for key, value in fields.items():
            target = join_path(path, key)
            self._root = _set_in(self._root, split_path(target), value)
        self._notify(path)
