r"""Shared test helpers for scripting backend responses.

Requests go through ``httpx.MockTransport`` so the real httpx request
and response machinery is exercised without touching the network.
"""

from __future__ import annotations

__all__ = [
    "BASE_URL",
    "ScriptedBackend",
    "Reply",
]

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx

BASE_URL = "http://api.test"


@dataclass
class Reply:
    """A scripted response: ``Reply(500)``, ``Reply(200, json={...})``."""

    status_code: int
    json: Any = None
    text: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def build(self) -> httpx.Response:
        if self.json is not None:
            return httpx.Response(self.status_code, json=self.json, headers=self.headers)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text, headers=self.headers)
        return httpx.Response(self.status_code, headers=self.headers)


class ScriptedBackend:
    r"""Backend answering requests from a script of steps.

    Each step is a ``Reply`` or an exception instance to raise. Steps are
    consumed in order; the last step is repeated once the script runs
    out. When ``gate`` is set, every request waits for it before being
    answered.
    """

    def __init__(self, *steps: Reply | Exception, gate: asyncio.Event | None = None) -> None:
        self.steps = list(steps) or [Reply(200)]
        self.requests: list[httpx.Request] = []
        self.gate = gate

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        return step.build()

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))
