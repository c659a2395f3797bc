"""Transport contract — the five CRUD primitives the dispatcher relies on.

The dispatcher builds key expressions and query options; a transport only moves
them to the backend. How it authenticates or resolves the physical endpoint is
its own business.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class TransportResponse:
    """Status, decoded body and headers of one backend call."""

    status_code: int
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)


class Transport(Protocol):
    async def fetch_entity_set(
        self,
        base_path: str,
        entity_set: str,
        query_options: dict[str, str | int],
        token: str | None = None,
    ) -> TransportResponse: ...

    async def fetch_entity(
        self,
        base_path: str,
        entity_set: str,
        key_expression: str,
        token: str | None = None,
    ) -> TransportResponse: ...

    async def create_entity(
        self,
        base_path: str,
        entity_set: str,
        payload: dict[str, Any],
        token: str | None = None,
    ) -> TransportResponse: ...

    async def update_entity(
        self,
        base_path: str,
        entity_set: str,
        key_expression: str,
        payload: dict[str, Any],
        token: str | None = None,
    ) -> TransportResponse: ...

    async def delete_entity(
        self,
        base_path: str,
        entity_set: str,
        key_expression: str,
        token: str | None = None,
    ) -> TransportResponse: ...
