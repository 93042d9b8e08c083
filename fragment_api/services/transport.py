import json
from typing import Any, Dict, Optional

from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import RequestException

from ..config import settings
from ..exceptions import TransportError
from ..utils.logger import logger


class HttpTransport:
    """JSON-over-HTTP capability: one request in, decoded JSON or TransportError out.

    No retries happen here; the order flow and auth issuer own their retry policies.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.api_base_url).rstrip('/')
        self.timeout = timeout or settings.request_timeout
        self._session: Optional[AsyncSession] = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            self._session = AsyncSession(
                impersonate="chrome120",
                timeout=self.timeout,
                headers={
                    'accept': 'application/json',
                    'content-type': 'application/json'
                }
            )
        return self._session

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request('GET', path, params=params)

    async def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request('POST', path, json=data or {})

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {path}")

        try:
            response = await self.session.request(method, url, **kwargs)
        except RequestException as e:
            logger.warning(f"{method} {path} failed without response: {e}")
            raise TransportError(f"{method} {path} failed: {e}") from e

        body = self._decode(response.text)

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(f"{method} {path} returned {response.status_code}: {body}")
            raise TransportError(
                f"{response.status_code} | {json.dumps(body) if not isinstance(body, str) else body}",
                status=response.status_code,
                body=body
            )

        if not isinstance(body, dict):
            raise TransportError(
                f"{method} {path} returned a non-JSON-object body",
                status=response.status_code,
                body=body
            )

        return body

    @staticmethod
    def _decode(text: str) -> Any:
        try:
            return json.loads(text) if text else {}
        except ValueError:
            return text

    async def close(self):
        if self._session is not None:
            await self._session.close()
            self._session = None
