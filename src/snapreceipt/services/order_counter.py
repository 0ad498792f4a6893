"""Daily order number counter backed by Upstash Redis.

Upstash exposes Redis over REST: POST the command as a JSON array
(``["INCR", key]``) with a bearer token and read ``result`` back.
One key per day, so numbering restarts every morning.
"""

import asyncio
import logging
from datetime import date
from typing import Any, List, Optional, Protocol

import aiohttp

logger = logging.getLogger(__name__)

STARTING_ORDER_NUMBER = 100


class OrderCounter(Protocol):
    """Source of order numbers for new receipts."""

    async def next_order_number(self) -> int:
        ...


class UpstashOrderCounter:
    """Order counter using the Upstash REST API.

    Never raises: an unconfigured counter or any remote failure yields
    the starting number so a receipt can still be printed.
    """

    def __init__(
        self,
        url: str = "",
        token: str = "",
        prefix: str = "dev",
        start: int = STARTING_ORDER_NUMBER,
        timeout: float = 10.0,
    ):
        self._url = url
        self._token = token
        self._prefix = prefix
        self._start = start
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._url and self._token)

    def key_for(self, day: Optional[date] = None) -> str:
        """Redis key for a day, e.g. ``dev_2024-01-15_counter``."""
        day = day or date.today()
        return f"{self._prefix}_{day.isoformat()}_counter"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
            )
        return self._session

    async def _command(self, *args: Any) -> Any:
        """Run one Redis command and return its result."""
        session = await self._get_session()
        command: List[Any] = [str(args[0]).upper(), *args[1:]]

        async with session.post(self._url, json=command) as response:
            if response.status != 200:
                text = await response.text()
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=f"Redis API error: {text}",
                )
            data = await response.json()

        if isinstance(data, dict):
            if "error" in data:
                raise aiohttp.ClientError(f"Redis error: {data['error']}")
            return data.get("result")
        return data

    async def next_order_number(self, day: Optional[date] = None) -> int:
        """Increment and return today's order number.

        The first call of the day seeds the key to ``start - 1`` so the
        atomic INCR hands out ``start``.
        """
        if not self.is_configured:
            return self._start

        key = self.key_for(day)
        try:
            current = await self._command("GET", key)
            if current is None:
                await self._command("SET", key, self._start - 1)
            value = await self._command("INCR", key)
            number = int(value)
            logger.info(f"Order number {number} ({key})")
            return number

        except asyncio.TimeoutError:
            logger.error("Timeout getting next order number")
        except aiohttp.ClientError as e:
            logger.error(f"Network error getting next order number: {e}")
        except (TypeError, ValueError) as e:
            logger.error(f"Unexpected order counter reply: {e}")
        return self._start

    async def current_order_number(self, day: Optional[date] = None) -> int:
        """Read today's order number without incrementing it."""
        if not self.is_configured:
            return self._start
        try:
            value = await self._command("GET", self.key_for(day))
            return int(value) if value is not None else self._start
        except (asyncio.TimeoutError, aiohttp.ClientError, TypeError, ValueError) as e:
            logger.error(f"Error reading order number: {e}")
            return self._start

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

