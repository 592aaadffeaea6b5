# awtrix_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests


log = logging.getLogger(__name__)

APP_NAME = "onair"
DEFAULT_TIMEOUT = 5.0


class AwtrixError(RuntimeError):
    pass


class AwtrixClient:
    """
    Shows and hides an "ON AIR" custom app on an AWTRIX 3 display.

    See https://blueforcer.github.io/awtrix3/#/api
    """

    def __init__(
        self,
        host: str,
        text: str = "ON AIR",
        color: str = "#FF0000",
        icon: str = "liveonair",
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not host:
            raise ValueError("AWTRIX host is required")
        self.base_url = host if host.startswith(("http://", "https://")) else f"http://{host}"
        self.base_url = self.base_url.rstrip("/")
        self.app_name = APP_NAME
        self.text = text
        self.color = color
        self.icon = icon
        self._timeout = timeout
        self._session = session or requests.Session()
        self._log = logger or log

    @property
    def custom_app_url(self) -> str:
        return f"{self.base_url}/api/custom"

    def _check(self, resp: requests.Response) -> None:
        if not resp.ok:
            raise AwtrixError(f"Awtrix API error: {resp.status_code} {resp.reason}")

    def update_custom_app(self, data: Optional[Dict[str, Any]]) -> None:
        # an empty payload deletes the custom app
        payload = {} if data is None else data
        resp = self._session.post(
            self.custom_app_url,
            params={"name": self.app_name},
            json=payload,
            timeout=self._timeout,
        )
        self._check(resp)

    def show_on_air(self) -> None:
        self.update_custom_app({"text": self.text, "color": self.color, "icon": self.icon})

    def hide_on_air(self) -> None:
        self.update_custom_app(None)

    def get_apps(self) -> List[Dict[str, Any]]:
        resp = self._session.get(f"{self.base_url}/api/apps", timeout=self._timeout)
        self._check(resp)
        data = resp.json()
        if not isinstance(data, list):
            raise AwtrixError("Awtrix /api/apps did not return a list")
        return [a for a in data if isinstance(a, dict)]

    def ensure_clean_state(self) -> None:
        """Removes an "onair" app left over from a previous session."""
        if any(a.get("name") == self.app_name for a in self.get_apps()):
            self._log.info('Clearing existing "%s" app state', self.app_name)
            self.hide_on_air()

    def close(self) -> None:
        self._session.close()


class AwtrixSink:
    """Mic sink that drives an AwtrixClient; display errors are logged, not raised."""

    def __init__(self, client: AwtrixClient, logger: Optional[logging.Logger] = None) -> None:
        self.client = client
        self._log = logger or log

    def mic_changed(self, is_active: bool, app_name: Optional[str]) -> None:
        try:
            if is_active:
                self.client.show_on_air()
                self._log.info("ON AIR indicator activated")
            else:
                self.client.hide_on_air()
                self._log.info("ON AIR indicator deactivated")
        except (requests.RequestException, AwtrixError) as e:
            self._log.error("Failed to update Awtrix display: %s", e)
