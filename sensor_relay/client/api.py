"""HTTP client the listening phone uses to talk to the relay API."""

import logging
from typing import Any, Dict, Optional

import requests

from sensor_relay.core.settings import settings

logger = logging.getLogger(__name__)


class RelayClient:
    """Thin wrapper over ``requests`` for the relay endpoints.

    Calls are fire-and-forget from the detector's point of view: network and
    HTTP errors are logged and ``None`` is returned. No retry is attempted;
    the next physical event is the retry.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        id_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.relay_api_url).rstrip("/")
        self.id_token = id_token
        self.timeout = timeout if timeout is not None else settings.client_timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.id_token:
            headers["Authorization"] = f"Bearer {self.id_token}"
        return headers

    def _request(self, method: str, path: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method, url, json=payload, headers=self._headers(), timeout=self.timeout
            )
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            return None

    def submit_event(
        self,
        user_id: str,
        type: Optional[str] = None,
        event: Optional[str] = None,
        title: Optional[str] = None,
        body: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """POST /sendNotification; returns the delivery summary on success."""
        payload = {"userId": user_id}
        for key, value in (("type", type), ("event", event), ("title", title), ("body", body)):
            if value:
                payload[key] = value
        result = self._request("POST", "/sendNotification", payload)
        if result is not None:
            logger.info(
                f"Event {type or 'mail'}/{event or '-'} delivered: "
                f"{result.get('successCount')} ok, {result.get('failureCount')} failed"
            )
        return result

    def register_token(self, device_id: str, token: str) -> Optional[Dict[str, Any]]:
        return self._request("PUT", f"/users/me/devices/{device_id}/token", {"token": token})

    def heartbeat(self, device_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._request("PUT", f"/users/me/devices/{device_id}/heartbeat", payload)
