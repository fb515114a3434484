"""
Outbound HTTP caller.
"""

import logging
from typing import Dict, Optional

import requests

from awake.errors import TransportError


logger = logging.getLogger("awake.caller")


class OutboundCaller:
    """
    Performs one HTTP request per call and reports the status code.

    Any response, whatever its status, counts as a completed call. Only a
    failure to get a response at all (DNS, refused connection, timeout,
    malformed URL, ...) is raised, as TransportError.

    Usage:
        caller = OutboundCaller(timeout=10)
        status = caller.perform('GET', 'https://example.com/ping')
    """

    def __init__(self, timeout: Optional[float] = None, session: requests.Session = None):
        """
        Args:
            timeout: Seconds to wait for the remote end; None waits indefinitely
            session: Optional shared requests session
        """
        self.timeout = timeout
        self.session = session or requests.Session()

    def perform(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None
    ) -> int:
        data = body.encode('utf-8') if isinstance(body, str) else body
        try:
            resp = self.session.request(
                method,
                url,
                headers=headers or {},
                data=data,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        # Only the status matters; release the connection back to the pool
        resp.close()
        logger.debug(f"{method} {url} -> {resp.status_code}")
        return resp.status_code

    def close(self) -> None:
        self.session.close()
