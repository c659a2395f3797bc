"""Tool-name allocator — short, unique, deterministic names for per-entity tools.

MCP clients cap tool names at 64 characters, while ``operation-service-entity``
for SAP services easily exceeds that. Names are shortened in stages (verbatim,
abbreviated, hashed) and de-duplicated with a numeric suffix.
"""

from __future__ import annotations

import hashlib
import re
import threading

from ..constants import (
    ABBREVIATED_NAME_LIMIT,
    HASH_FRAGMENT_LENGTH,
    MAX_TOOL_NAME_LENGTH,
    NAME_FRAGMENT_LENGTH,
)
from ..logging_config import create_logger

logger = create_logger(__name__)

SERVICE_PREFIXES = ("ZBP_", "ZC_", "ZI_", "YBP_", "YC_", "YI_")
# Longest first so "_SRV_0001" wins over "_SRV"
SERVICE_SUFFIXES = ("_SRV_0001", "_SERVICE", "_SRV", "_CDS")

_ACRONYM_START = re.compile(r"^[A-Z][a-z]")


def long_name(operation: str, service_id: str, entity_name: str) -> str:
    """Canonical long form of a tool identity."""
    return f"{operation}--{service_id}--{entity_name}"


def abbreviate_service_id(service_id: str) -> str:
    """Strip organizational affixes and shorten to at most 12 characters.

    Examples:
        "ZBP_SALES_ORDER_SRV" → "SALES_ORDER"
        "ZC_PURCHASE_REQUISITION_MANAGE_SRV" → "PURCHASE_MAN"
    """
    result = service_id
    upper = result.upper()
    for prefix in SERVICE_PREFIXES:
        if upper.startswith(prefix):
            result = result[len(prefix):]
            break
    upper = result.upper()
    for suffix in SERVICE_SUFFIXES:
        if upper.endswith(suffix) and len(result) > len(suffix):
            result = result[: -len(suffix)]
            break

    if len(result) > NAME_FRAGMENT_LENGTH:
        segments = [s for s in result.split("_") if s]
        if len(segments) > 1:
            result = f"{segments[0]}_{segments[-1]}"
    return result[:NAME_FRAGMENT_LENGTH]


def abbreviate_entity_name(entity_name: str) -> str:
    """Shorten an entity name to at most 12 characters.

    CamelCase names with several capitals collapse to their acronym
    ("SalesOrderItemPartner" → "SOIP"); anything else is truncated.
    """
    capitals = [c for c in entity_name if c.isupper()]
    if _ACRONYM_START.match(entity_name) and len(capitals) > 1:
        return "".join(capitals)[:NAME_FRAGMENT_LENGTH]
    return entity_name[:NAME_FRAGMENT_LENGTH]


def short_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:HASH_FRAGMENT_LENGTH]


class ToolNameAllocator:
    """Issues tool names and remembers every short↔long mapping it has made.

    Allocation is a check-and-insert on shared state and runs under a lock, so
    one allocator can be used from several threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._short_to_long: dict[str, str] = {}
        self._long_to_short: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._short_to_long)

    def allocate(self, operation: str, service_id: str, entity_name: str) -> str:
        """Return the short name for this triple, minting one if needed."""
        canonical = long_name(operation, service_id, entity_name)
        with self._lock:
            existing = self._long_to_short.get(canonical)
            if existing is not None:
                return existing

            candidate = self._candidate(operation, service_id, entity_name)
            name = self._deduplicate(candidate)
            self._short_to_long[name] = canonical
            self._long_to_short[canonical] = name

        if name != f"{operation}-{service_id}-{entity_name}":
            logger.debug(f"Shortened tool name {canonical} -> {name}")
        return name

    def short_name_for(self, operation: str, service_id: str, entity_name: str) -> str | None:
        return self._long_to_short.get(long_name(operation, service_id, entity_name))

    def long_name_for(self, short_name: str) -> str | None:
        return self._short_to_long.get(short_name)

    def mappings(self) -> dict[str, str]:
        """Snapshot of short name → long form."""
        with self._lock:
            return dict(self._short_to_long)

    @staticmethod
    def _candidate(operation: str, service_id: str, entity_name: str) -> str:
        verbatim = f"{operation}-{service_id}-{entity_name}"
        if len(verbatim) <= MAX_TOOL_NAME_LENGTH:
            return verbatim

        abbreviated = (
            f"{operation}-{abbreviate_service_id(service_id)}-"
            f"{abbreviate_entity_name(entity_name)}"
        )
        if len(abbreviated) <= ABBREVIATED_NAME_LIMIT:
            return abbreviated

        return f"{operation}-{short_hash(service_id)}-{short_hash(entity_name)}"[
            :MAX_TOOL_NAME_LENGTH
        ]

    def _deduplicate(self, candidate: str) -> str:
        if candidate not in self._short_to_long:
            return candidate
        counter = 1
        while True:
            suffix = f"-{counter}"
            name = candidate[: MAX_TOOL_NAME_LENGTH - len(suffix)] + suffix
            if name not in self._short_to_long:
                return name
            counter += 1
