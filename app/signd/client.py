# app/signd/client.py

"""
HTTP client for the signd.it API.

All calls are synchronous request/response. Connectivity problems surface as
SigndUnreachableException, error answers as SigndApiException; nothing is
retried here.
"""

import base64
import json
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends

from app.signd.config import SigndConfig, get_signd_config
from app.signd.exceptions import SigndApiException, SigndUnreachableException
from app.utils.logger import get_logger

logger = get_logger(__name__)


class SigndClient:
    """
    Client for the signd.it process API, authenticated with the account API key.
    """

    def __init__(self, config: SigndConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        if not config.api_key_set:
            logger.warning("signd.it API key is not configured")
        self._http = httpx.Client(
            base_url=config.base_url.rstrip("/"),
            headers={"X-API-KEY": config.api_key, "Accept": "application/json"},
            timeout=config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            # Connect errors, timeouts and dropped connections
            logger.error("signd.it unreachable", method=method, path=path, error=str(e))
            raise SigndUnreachableException(str(e) or e.__class__.__name__) from e

        if response.is_error:
            message = self._error_message(response)
            logger.error(
                "signd.it API error",
                method=method,
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise SigndApiException(response.status_code, message)

        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    def _json(self, response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise SigndApiException(response.status_code, "response is not JSON") from e
        return data if isinstance(data, dict) else {"data": data}

    # ------------------------
    # Wizard
    # ------------------------
    def start_wizard(self, pdf_bytes: bytes, filename: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Upload a PDF and open a signing wizard. Returns processId and wizardUrl."""
        payload = {
            "pdfData": base64.b64encode(pdf_bytes).decode("ascii"),
            "pdfFilename": filename,
            "apiClientMetaData": json.dumps(metadata),
        }
        logger.info("Starting signd.it wizard", filename=filename, size=len(pdf_bytes))
        return self._json(self._request("POST", "/api/new-wizard", json=payload))

    def resume_wizard(self, process_id: str) -> Dict[str, Any]:
        return self._json(self._request("POST", "/api/resume-wizard", json={"processId": process_id}))

    def cancel_wizard(self, process_id: str) -> None:
        self._request("POST", "/api/cancel-wizard", json={"processId": process_id})
        logger.info("Wizard cancelled", process_id=process_id)

    # ------------------------
    # Processes
    # ------------------------
    def get_meta(self, process_id: str) -> Dict[str, Any]:
        """Drafts and processes known for the given process id."""
        return self._json(self._request("GET", "/api/get-meta", params={"id": process_id}))

    def get_finished_pdf(self, process_id: str) -> bytes:
        """Bytes of the finished, signed PDF."""
        response = self._request(
            "GET", "/api/finished", params={"id": process_id}, headers={"Accept": "application/pdf"}
        )
        logger.info("Finished PDF fetched", process_id=process_id, size=len(response.content))
        return response.content

    def cancel_process(self, process_id: str, reason: str = "") -> None:
        self._request("POST", "/api/cancel-process", json={"processId": process_id, "reason": reason})
        logger.info("Process cancelled", process_id=process_id)

    def list_processes(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Search processes of the account. Returns numHits and processes."""
        return self._json(self._request("GET", "/api/list", params=params))


def get_signd_client(config: SigndConfig = Depends(get_signd_config)):
    """Get a signd.it client for the duration of a request"""
    client = SigndClient(config)
    try:
        yield client
    finally:
        client.close()
