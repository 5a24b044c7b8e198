"""
Persistence collaborators for the application state.

Every store exposes the same contract: load the whole state, save the whole
state, and apply a reducer atomically. The view engine never talks to a store.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import requests
from pydantic import ValidationError

from . import settings
from .exceptions import ConcurrentUpdateError, StoreError
from .schemas import AppState
from .seed_data import demo_state

logger = logging.getLogger(__name__)

StateUpdate = Callable[..., AppState]


def _dump(state: AppState) -> dict:
    return state.model_dump(mode="json", by_alias=True, exclude_none=True)


class InventoryStore(ABC):
    @abstractmethod
    def load(self) -> AppState:
        pass

    @abstractmethod
    def save(self, state: AppState) -> None:
        pass

    def apply(self, update: StateUpdate, *args, **kwargs) -> AppState:
        """
        Runs `update(current_state, *args, **kwargs)` and persists the result.
        Errors raised by the update leave the stored state untouched.
        """
        new_state = update(self.load(), *args, **kwargs)
        self.save(new_state)
        return new_state


class MemoryStore(InventoryStore):
    def __init__(self, state: Optional[AppState] = None):
        self._state = state if state is not None else demo_state()

    def load(self) -> AppState:
        return self._state

    def save(self, state: AppState) -> None:
        self._state = state


class JsonFileStore(InventoryStore):
    """The whole state as one JSON document on disk."""

    def __init__(self, path: Path | str = settings.STATE_FILE):
        self.path = Path(path)

    def load(self) -> AppState:
        if not self.path.exists():
            logger.warning(f"⚠️ State file not found at {self.path}. Starting empty.")
            return AppState()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return AppState.model_validate(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StoreError(f"State file {self.path} is not a valid inventory document: {e}") from e

    def save(self, state: AppState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write next to the target and swap it in, so readers never see half a file.
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(_dump(state), f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"State saved to {self.path}")


class RemoteDocumentStore(InventoryStore):
    """
    Hosted document database reached over HTTP.
    - GET  <base>/state returns the document and its ETag.
    - PUT  <base>/state with If-Match replaces it only if nobody else did first.
    A 412 reply means a concurrent writer won; `apply` then re-reads and retries.
    """

    def __init__(
        self,
        base_url: str = settings.REMOTE_STORE_URL,
        token: Optional[str] = settings.REMOTE_STORE_TOKEN,
        timeout: int = settings.REMOTE_STORE_TIMEOUT,
        max_attempts: int = settings.REMOTE_STORE_MAX_ATTEMPTS,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise StoreError("REMOTE_STORE_URL must be set to use the remote store.")
        self.url = f"{base_url.rstrip('/')}/state"
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def _fetch(self) -> tuple[AppState, Optional[str]]:
        try:
            response = self.session.get(self.url, headers=self.headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Could not reach the document store: {e}") from e

        if response.status_code == 404:
            return AppState(), None
        if not response.ok:
            raise StoreError(f"Document store returned {response.status_code} on read.")
        try:
            state = AppState.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise StoreError(f"Document store returned an invalid document: {e}") from e
        return state, response.headers.get("ETag")

    def _put(self, state: AppState, conditions: dict[str, str]) -> bool:
        """Writes the document; False when a precondition failed (someone else wrote first)."""
        try:
            response = self.session.put(
                self.url,
                json=_dump(state),
                headers={**self.headers, **conditions},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Could not reach the document store: {e}") from e

        if response.status_code == 412:
            return False
        if not response.ok:
            raise StoreError(f"Document store returned {response.status_code} on write.")
        return True

    def load(self) -> AppState:
        state, _ = self._fetch()
        return state

    def save(self, state: AppState) -> None:
        """Unconditional overwrite. Use apply() for anything another client may race with."""
        self._put(state, {})

    def apply(self, update: StateUpdate, *args, **kwargs) -> AppState:
        for attempt in range(1, self.max_attempts + 1):
            current, etag = self._fetch()
            new_state = update(current, *args, **kwargs)
            conditions = {"If-Match": etag} if etag else {"If-None-Match": "*"}
            if self._put(new_state, conditions):
                return new_state
            logger.warning(
                f"⚠️ Concurrent update detected (attempt {attempt}/{self.max_attempts}). Retrying."
            )
        raise ConcurrentUpdateError(
            f"Gave up after {self.max_attempts} attempts: the document kept changing."
        )


def get_store(backend: str = settings.STORE_BACKEND) -> InventoryStore:
    if backend == "memory":
        return MemoryStore()
    if backend == "file":
        return JsonFileStore(settings.STATE_FILE)
    if backend == "remote":
        return RemoteDocumentStore(
            base_url=settings.REMOTE_STORE_URL,
            token=settings.REMOTE_STORE_TOKEN,
            timeout=settings.REMOTE_STORE_TIMEOUT,
            max_attempts=settings.REMOTE_STORE_MAX_ATTEMPTS,
        )
    raise StoreError(f"Unknown STORE_BACKEND '{backend}'. Use memory, file or remote.")
