from __future__ import annotations

import asyncio
from datetime import date

import aiohttp

from snapreceipt.services.order_counter import STARTING_ORDER_NUMBER, UpstashOrderCounter


class FakeRedis:
    """Stands in for the Upstash REST endpoint."""

    def __init__(self) -> None:
        self.store: dict[str, int] = {}
        self.commands: list[tuple] = []

    async def __call__(self, *args):
        self.commands.append(args)
        command, key, *rest = args
        if command == "GET":
            value = self.store.get(key)
            return None if value is None else str(value)
        if command == "SET":
            self.store[key] = int(rest[0])
            return "OK"
        if command == "INCR":
            self.store[key] = self.store.get(key, 0) + 1
            return self.store[key]
        raise AssertionError(f"unexpected command {command}")


def configured_counter(monkeypatch, fake) -> UpstashOrderCounter:
    counter = UpstashOrderCounter(url="https://example.upstash.io", token="token", prefix="test")
    monkeypatch.setattr(counter, "_command", fake)
    return counter


def test_key_format() -> None:
    counter = UpstashOrderCounter(prefix="dev")

    assert counter.key_for(date(2024, 1, 15)) == "dev_2024-01-15_counter"


def test_unconfigured_counter_returns_start() -> None:
    counter = UpstashOrderCounter()

    assert not counter.is_configured
    assert asyncio.run(counter.next_order_number()) == STARTING_ORDER_NUMBER


def test_first_order_of_the_day_is_start(monkeypatch) -> None:
    fake = FakeRedis()
    counter = configured_counter(monkeypatch, fake)
    day = date(2025, 11, 25)

    async def take_three():
        return [await counter.next_order_number(day) for _ in range(3)]

    assert asyncio.run(take_three()) == [100, 101, 102]
    assert fake.commands[:3] == [
        ("GET", "test_2025-11-25_counter"),
        ("SET", "test_2025-11-25_counter", 99),
        ("INCR", "test_2025-11-25_counter"),
    ]


def test_new_day_restarts_numbering(monkeypatch) -> None:
    fake = FakeRedis()
    counter = configured_counter(monkeypatch, fake)

    async def across_days():
        await counter.next_order_number(date(2025, 11, 25))
        await counter.next_order_number(date(2025, 11, 25))
        return await counter.next_order_number(date(2025, 11, 26))

    assert asyncio.run(across_days()) == 100


def test_network_error_falls_back_to_start(monkeypatch) -> None:
    async def offline(*args):
        raise aiohttp.ClientConnectionError("offline")

    counter = configured_counter(monkeypatch, offline)

    assert asyncio.run(counter.next_order_number()) == STARTING_ORDER_NUMBER
    assert asyncio.run(counter.current_order_number()) == STARTING_ORDER_NUMBER


def test_current_order_number_does_not_increment(monkeypatch) -> None:
    fake = FakeRedis()
    fake.store["test_2025-11-25_counter"] = 104
    counter = configured_counter(monkeypatch, fake)

    assert asyncio.run(counter.current_order_number(date(2025, 11, 25))) == 104
    assert fake.store["test_2025-11-25_counter"] == 104
