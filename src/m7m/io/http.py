"""HTTP GET/POST primitives with retry-and-sleep.

Wraps a ``requests.Session`` so flow code never touches
``requests`` directly and tests can inject a mocked session.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping

import requests

from m7m.errors import HttpError
from m7m.io.retry import call_with_retries

logger = logging.getLogger(__name__)

# Status codes accepted as a successful POST.
POST_SUCCESS_CODES: frozenset[int] = frozenset({200, 201})


class HttpClient:
    """Small wrapper around ``requests`` for the two requests a flow can make."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        user_agent: str = "m7m",
        session: requests.Session | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._session = session or requests.Session()
        self._sleep = sleep or time.sleep

    def get_text(self, url: str, *, retries: int = 0, retry_interval: float = 1.0) -> str:
        """GET ``url`` and return the response body as text.

        The whole request is retried on a transport error or a non-2xx status.

        Raises:
            HttpError: When every attempt failed.
        """

        def attempt() -> str:
            try:
                resp = self._session.get(
                    url, headers={"User-Agent": self._user_agent}, timeout=self._timeout
                )
            except requests.RequestException as e:
                raise HttpError(f"couldn't get URL {url}: {e}") from e
            if not 200 <= resp.status_code < 300:
                raise HttpError(f"error code on GET to URL {url}: {resp.status_code}")
            return resp.text

        logger.debug("GET %s", url, extra={"retries": retries})
        return call_with_retries(
            attempt,
            retries=retries,
            retry_interval=retry_interval,
            exceptions=(HttpError,),
            description=f"GET {url}",
            sleep=self._sleep,
        )

    def post_text(
        self,
        url: str,
        *,
        body: str,
        headers: Mapping[str, str] | None = None,
        retries: int = 0,
        retry_interval: float = 1.0,
    ) -> None:
        """POST ``body`` to ``url``; only 200 and 201 count as success.

        Raises:
            HttpError: When every attempt failed.
        """

        def attempt() -> None:
            try:
                resp = self._session.post(
                    url,
                    data=body.encode("utf-8"),
                    headers={"User-Agent": self._user_agent, **(headers or {})},
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                raise HttpError(f"could not send POST request to {url}: {e}") from e
            if resp.status_code not in POST_SUCCESS_CODES:
                raise HttpError(f"POST request to {url} returned error code {resp.status_code}")

        logger.debug("POST %s", url, extra={"retries": retries})
        call_with_retries(
            attempt,
            retries=retries,
            retry_interval=retry_interval,
            exceptions=(HttpError,),
            description=f"POST {url}",
            sleep=self._sleep,
        )

    def close(self) -> None:
        self._session.close()
