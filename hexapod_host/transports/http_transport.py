# hexapod_host/transports/http_transport.py

import asyncio
import base64
import logging

import requests

log = logging.getLogger(__name__)


class HttpPacketSender:
    """
    One-shot packet delivery over the robot's HTTP endpoint:

        GET http://<host>:<port>/send?raw=<base64 packet>

    Best effort only: failures are logged at debug level and never raised or
    retried. requests is blocking, so the call runs in the default executor.
    """

    def __init__(self, host: str, port: int, timeout: float = 1.0) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.session = requests.Session()

        self.sent = 0
        self.failed = 0

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def url_for(self, data: bytes) -> str:
        raw = base64.b64encode(data).decode("ascii")
        return f"{self.base_url}/send?raw={raw}"

    async def send_once(self, data: bytes) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.send_once_blocking, data)

    def send_once_blocking(self, data: bytes) -> bool:
        url = self.url_for(data)
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            self.failed += 1
            log.debug("HTTP error: %s", e)
            return False

        self.sent += 1
        log.debug("GET %s", url)
        return True

    def close(self) -> None:
        self.session.close()
