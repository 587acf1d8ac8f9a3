# agency/services/functions_client.py
from typing import Any, Dict

import requests
from requests import RequestException

from agency.domain.errors import FunctionCallError
from agency.utils.settings import FUNCTIONS_URL, FUNCTIONS_TIMEOUT_SECONDS
from agency.utils.logging import get_logger

logger = get_logger(__name__)


class FunctionsClient:
    """
    Wywolania funkcji uprzywilejowanych (omijaja zwykle uprawnienia zapisu).
    Bez retry: inserty nie sa idempotentne.
    """

    def __init__(self, base_url: str | None = None, timeout: int = FUNCTIONS_TIMEOUT_SECONDS):
        self.base_url = (base_url or FUNCTIONS_URL).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def invoke(
        self,
        name: str,
        payload: Dict[str, Any],
        access_token: str | None = None,
        user_id: str | None = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{name}"
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        if user_id:
            headers["X-User-Id"] = user_id

        logger.info(f"FunctionsClient POST {url}")

        try:
            resp = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except RequestException as e:
            raise FunctionCallError(name, f"Error de red: {e}") from e

        if not resp.ok:
            try:
                body = resp.json()
            except ValueError:
                body = None
            message = (body.get("error") if isinstance(body, dict) else None) or f"Error: {resp.status_code}"
            raise FunctionCallError(name, message, status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise FunctionCallError(name, "Invalid JSON response", status_code=resp.status_code) from e

    def close(self):
        self.session.close()
