"""Host-side contract the plugin talks to, plus a local host implementation.

A real launcher provides its own ``PublicAPI``; ``LocalHost`` backs the
terminal harness in ``menus/launcher_menu.py`` and the tests.
"""

import json
import os
import threading
import urllib.parse
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from launcher.models import ChangeQueryParam, Context
from utils.logger import log_debug, log_error, log_info, log_warning

DeepLinkCallback = Callable[[Dict[str, str]], None]


def parse_deep_link(url: str) -> Dict[str, str]:
    """Return the query parameters of a deep link as a flat dict (first value wins)."""

    parsed = urllib.parse.urlparse(str(url or "").strip())
    qs = urllib.parse.parse_qs(parsed.query)
    return {key: str(values[0]) for key, values in qs.items() if values}


class SettingsStore:
    """String key-value settings, persisted as JSON when a path is given."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            log_warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return
        if isinstance(data, dict):
            self._values = {str(k): str(v) for k, v in data.items() if v is not None}

    def get(self, key: str, default: str = "") -> str:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
            if not self.path:
                return
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._values, f, indent=2)


class PublicAPI(ABC):
    """Calls a launcher host exposes to its plugins."""

    @abstractmethod
    def get_setting(self, ctx: Context, key: str) -> str:
        pass

    @abstractmethod
    def save_setting(self, ctx: Context, key: str, value: str) -> None:
        pass

    @abstractmethod
    def log(self, ctx: Context, level: str, message: str) -> None:
        pass

    @abstractmethod
    def on_deep_link(self, ctx: Context, callback: DeepLinkCallback) -> None:
        pass

    @abstractmethod
    def change_query(self, ctx: Context, query: ChangeQueryParam) -> None:
        pass

    @abstractmethod
    def show_app(self, ctx: Context) -> None:
        pass


class LocalHost(PublicAPI):
    def __init__(self, settings: Optional[SettingsStore] = None):
        self.settings = settings or SettingsStore()
        self.deep_link_callbacks: List[DeepLinkCallback] = []
        self.pending_query: Optional[ChangeQueryParam] = None
        self.visible = True

    def get_setting(self, ctx: Context, key: str) -> str:
        return self.settings.get(key, "")

    def save_setting(self, ctx: Context, key: str, value: str) -> None:
        self.settings.set(key, value)

    def log(self, ctx: Context, level: str, message: str) -> None:
        level = (level or "").lower()
        if level == "error":
            log_error(message)
        elif level in ("warn", "warning"):
            log_warning(message)
        elif level == "debug":
            log_debug(message)
        else:
            log_info(message)

    def on_deep_link(self, ctx: Context, callback: DeepLinkCallback) -> None:
        self.deep_link_callbacks.append(callback)

    def dispatch_deep_link(self, url: str) -> Dict[str, str]:
        params = parse_deep_link(url)
        for callback in list(self.deep_link_callbacks):
            callback(params)
        return params

    def change_query(self, ctx: Context, query: ChangeQueryParam) -> None:
        self.pending_query = query

    def take_pending_query(self) -> Optional[ChangeQueryParam]:
        query, self.pending_query = self.pending_query, None
        return query

    def show_app(self, ctx: Context) -> None:
        self.visible = True
