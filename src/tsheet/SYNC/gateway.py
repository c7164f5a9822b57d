"""
Remote sync for the timesheet store.
The server just stores and returns the snapshot document; all merging happens here.
"""

import json
import threading
from typing import Any, Callable, Dict, Optional

import requests

from tsheet.config import get_http_timeout
from tsheet.errors import MalformedDocument, SyncInProgress, TransportFailure
from tsheet.logging_config import get_sync_logger, mask_token
from tsheet.SYNC.reconcile import export_payload, merge, sanitize
from tsheet.TIMETRACK.model import Snapshot, SyncConfig
from tsheet.TIMETRACK.timecalc import now_iso

logger = get_sync_logger()

USER_AGENT = "tsheet/1.0"


class SyncGateway:
    """HTTP access to the read/write URLs in a :class:`SyncConfig`.

    ``load`` GETs the remote document, ``save`` PUTs or POSTs one. Any
    non-2xx status or network error becomes :class:`TransportFailure`.
    """

    def __init__(self, config: SyncConfig, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.config = config
        self.timeout = timeout if timeout is not None else get_http_timeout()
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "SyncGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {'User-Agent': USER_AGENT}
        if json_body:
            headers['Content-Type'] = 'application/json'
        if self.config.bearer_token:
            headers['Authorization'] = f'Bearer {self.config.bearer_token}'
        return headers

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TransportFailure(f"{method} timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportFailure(f"{method} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"{method} {url} returned {response.status_code} - {response.text[:200]}")
            raise TransportFailure(
                f"{method} failed: {response.status_code} {response.reason or ''}".rstrip(),
                status_code=response.status_code,
            )
        return response

    def load(self) -> Snapshot:
        url = self.config.read_url
        if not url:
            raise TransportFailure("Read URL is blank.")

        logger.info(f"GET {url} (token: {mask_token(self.config.bearer_token)})")
        response = self._request('GET', url, headers=self._headers())
        try:
            document = response.json()
        except ValueError as e:
            raise MalformedDocument(f"Server response is not JSON: {e}") from e
        return sanitize(document)

    def save(self, payload: Dict[str, Any]) -> Optional[Any]:
        """Send the document; returns the parsed JSON reply or None when there is none."""
        url = self.config.write_url
        if not url:
            raise TransportFailure("Write URL is blank.")

        method = self.config.write_method
        logger.info(f"{method} {url} (token: {mask_token(self.config.bearer_token)})")
        response = self._request(
            method, url,
            headers=self._headers(json_body=True),
            data=json.dumps(payload),
        )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.debug(f"{method} {url} reply is not JSON, ignoring it")
            return None


class SyncService:
    """Runs pull/push against a store, one operation at a time.

    A second call while one is in flight raises :class:`SyncInProgress`
    instead of racing the first to overwrite the snapshot. Failed calls
    leave the store and ``lastSyncAt`` untouched.
    """

    def __init__(self, store, gateway_factory: Callable[[SyncConfig], SyncGateway] = SyncGateway):
        self.store = store
        self.gateway_factory = gateway_factory
        self.last_error: Optional[str] = None
        self._sync_lock = threading.Lock()

    @property
    def is_syncing(self) -> bool:
        return self._sync_lock.locked()

    def _run(self, name: str, operation: Callable[[SyncGateway], Any]) -> Any:
        if not self._sync_lock.acquire(blocking=False):
            logger.warning(f"{name}: already syncing")
            raise SyncInProgress()
        try:
            with self.gateway_factory(self.store.snapshot.settings.sync) as gateway:
                result = operation(gateway)
            self.last_error = None
            return result
        except (TransportFailure, MalformedDocument) as e:
            self.last_error = str(e)
            logger.error(f"{name} failed: {e}")
            raise
        finally:
            self._sync_lock.release()

    def pull(self) -> Snapshot:
        """Load the remote document and merge it into the store (remote wins per id)."""
        def operation(gateway: SyncGateway) -> Snapshot:
            incoming = gateway.load()
            merged = merge(self.store.snapshot, incoming)
            merged.settings.sync.last_sync_at = now_iso()
            self.store.replace_snapshot(merged)
            logger.info(
                f"Pulled {len(incoming.clients)} clients, {len(incoming.sheets)} sheets, "
                f"{len(incoming.entries)} entries and merged them into local data"
            )
            return merged

        return self._run("pull", operation)

    def push(self) -> Optional[Any]:
        """Send the full local snapshot to the write URL."""
        def operation(gateway: SyncGateway) -> Optional[Any]:
            reply = gateway.save(export_payload(self.store.snapshot))
            self.store.mark_synced()
            logger.info("Saved local data to the write URL")
            return reply

        return self._run("push", operation)
