"""HTTP client for the node's REST API."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Iterator
from http import HTTPStatus
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

_MAX_ATTEMPTS = 3
_INITIAL_INTERVAL = 0.1
_MAX_INTERVAL = 10.0
_MULTIPLIER = 1.5
_RANDOMIZATION = 0.5


class ClientError(Exception):
    """A request to the node failed or returned something unusable."""


def _default_session() -> requests.Session:
    retry = Retry(
        total=5,
        backoff_factor=0.1,
        backoff_max=10,
        status_forcelist=(408, 429, 500, 502, 503, 504),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def _backoff_intervals() -> Iterator[float]:
    interval = _INITIAL_INTERVAL
    while True:
        yield interval * random.uniform(1 - _RANDOMIZATION, 1 + _RANDOMIZATION)
        interval = min(interval * _MULTIPLIER, _MAX_INTERVAL)


def _status_text(code: int) -> str:
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return str(code)


class Client:
    """Talks to one node through its base URL, retrying transient failures."""

    def __init__(
        self,
        base_url: str,
        *,
        network: Any = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.network = network
        self._session = session if session is not None else _default_session()
        self._sleep = sleep

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint}"

    def _get_json(self, endpoint: str) -> Any:
        try:
            response = self._session.get(self._url(endpoint))
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ClientError(f"Request to {endpoint} failed: {exc}") from exc

    def get_blocks(self, from_ts: int, to_ts: int) -> Any:
        """List blocks on the given time interval."""
        return self._get_json(f"blockflow/blocks?fromTs={from_ts}&toTs={to_ts}")

    def get_blocks_and_events(self, from_ts: int, to_ts: int) -> Any:
        """List blocks with their events on the given time interval.

        Server errors and undecodable bodies are retried with exponential backoff.
        """
        url = self._url(f"blockflow/blocks-with-events?fromTs={from_ts}&toTs={to_ts}")
        backoff = _backoff_intervals()
        attempt = 0
        while True:
            attempt += 1
            logger.debug(
                "Requesting blocks with events from: %s to: %s (attempt %d/%d)",
                from_ts, to_ts, attempt, _MAX_ATTEMPTS,
            )
            try:
                response = self._session.get(url)
            except requests.RequestException as exc:
                raise ClientError(f"Request failed after {attempt} attempts: {exc!r}") from exc

            if not response.ok:
                status = _status_text(response.status_code)
                if response.status_code >= 500 and attempt < _MAX_ATTEMPTS:
                    delay = next(backoff)
                    logger.warning("API returned error status: %s. Retrying in %.3fs...",
                                   status, delay)
                    self._sleep(delay)
                    continue
                raise ClientError(f"API returned error status: {status}")

            try:
                return response.json()
            except ValueError as exc:
                logger.error("Failed to deserialize response: %r", exc)
                logger.error("timestamp range: %s - %s", from_ts, to_ts)
                if attempt < _MAX_ATTEMPTS:
                    delay = next(backoff)
                    logger.warning("Deserialization failed. Retrying in %.3fs...", delay)
                    self._sleep(delay)
                    continue
                raise ClientError(f"Error decoding response body: {exc!r}") from exc

    def get_block(self, block_hash: str) -> Any:
        return self._get_json(f"blockflow/blocks/{block_hash}")

    def get_block_and_events_by_hash(self, block_hash: str) -> Any:
        return self._get_json(f"blockflow/blocks-with-events/{block_hash}")

    def get_block_header(self, block_hash: str) -> Any:
        return self._get_json(f"blockflow/headers/{block_hash}")

    def get_tx_by_hash(self, tx_id: str) -> Any:
        """Transaction details, or ``None`` when the node reports none."""
        return self._get_json(f"transactions/details/{tx_id}")

    def get_block_txs(self, block_hash: str, limit: int, offset: int) -> Any:
        return self._get_json(f"blocks/{block_hash}/transactions?limit={limit}&offset={offset}")