"""Stage 1 — search services and entities with minimal payloads.

Returns just enough (ids, titles, entity names, categories) for a caller to pick
a service/entity pair. A query that matches nothing falls back to the unfiltered
listing for the same category so the caller always has something to inspect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..constants import (
    DEFAULT_DISCOVERY_LIMIT,
    MAX_DISCOVERY_LIMIT,
    MIN_DISCOVERY_LIMIT,
    SCORE_ENTITY_NAME,
    SCORE_SERVICE_ID,
    SCORE_SERVICE_TITLE,
    SCORE_UNFILTERED,
)
from ..logging_config import create_logger
from ..schema.categories import Category, sorted_categories

if TYPE_CHECKING:
    from ..catalog import Catalog
    from ..schema import Service

logger = create_logger(__name__)


@dataclass(frozen=True)
class DiscoveryMatch:
    """A scored service or entity hit."""

    type: str  # "service" or "entity"
    score: float
    service_id: str
    service_name: str
    entity_count: int
    categories: tuple[str, ...]
    entity_names: tuple[str, ...] = ()
    entity_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "type": self.type,
            "score": self.score,
            "service": {
                "serviceId": self.service_id,
                "serviceName": self.service_name,
                "entityCount": self.entity_count,
                "categories": list(self.categories),
            },
        }
        if self.type == "service":
            d["entities"] = [{"entityName": name} for name in self.entity_names]
        else:
            d["entity"] = {"entityName": self.entity_name}
        return d


@dataclass
class DiscoveryResult:
    query: str
    category: Category
    returned_all_services: bool
    total_found: int
    matches: list[DiscoveryMatch] = field(default_factory=list)

    @property
    def showing(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query or "all",
            "category": self.category.value,
            "returnedAllServices": self.returned_all_services,
            "totalFound": self.total_found,
            "showing": self.showing,
            "matches": [m.to_dict() for m in self.matches],
        }


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_DISCOVERY_LIMIT
    return max(MIN_DISCOVERY_LIMIT, min(MAX_DISCOVERY_LIMIT, int(limit)))


class ServiceDiscovery:
    """Scores and ranks catalog services and entities against a text query."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def discover(
        self,
        query: str | None = None,
        category: str | Category | None = None,
        limit: int | None = None,
    ) -> DiscoveryResult:
        query_lower = (query or "").strip().lower()
        resolved_category = Category.coerce(category)
        max_results = clamp_limit(limit)

        matches = self._search(query_lower, resolved_category)
        returned_all = False
        if not matches and query_lower:
            logger.debug(f"No results for query '{query_lower}', returning all services")
            matches = self._search("", resolved_category)
            returned_all = True

        if query_lower and not returned_all:
            matches.sort(key=lambda m: m.score, reverse=True)
        else:
            matches.sort(key=lambda m: m.service_name.lower())

        return DiscoveryResult(
            query=query_lower,
            category=resolved_category,
            returned_all_services=returned_all,
            total_found=len(matches),
            matches=matches[:max_results],
        )

    def _search(self, query: str, category: Category) -> list[DiscoveryMatch]:
        matches: list[DiscoveryMatch] = []
        for service in self.catalog:
            if not self.catalog.categorizer.in_category(service.id, category):
                continue

            service_score = self._score_service(service, query)
            if service_score is not None:
                matches.append(self._service_match(service, service_score))

            if query:
                for entity_name in service.entity_names:
                    if query in entity_name.lower():
                        matches.append(self._entity_match(service, entity_name))
        return matches

    @staticmethod
    def _score_service(service: Service, query: str) -> float | None:
        if not query:
            return SCORE_UNFILTERED
        if query in service.id.lower():
            return SCORE_SERVICE_ID
        if query in service.title.lower():
            return SCORE_SERVICE_TITLE
        return None

    def _categories(self, service: Service) -> tuple[str, ...]:
        return tuple(sorted_categories(self.catalog.categories_for(service.id)))

    def _service_match(self, service: Service, score: float) -> DiscoveryMatch:
        names = tuple(service.entity_names)
        return DiscoveryMatch(
            type="service",
            score=score,
            service_id=service.id,
            service_name=service.title,
            entity_count=len(names),
            categories=self._categories(service),
            entity_names=names,
        )

    def _entity_match(self, service: Service, entity_name: str) -> DiscoveryMatch:
        return DiscoveryMatch(
            type="entity",
            score=SCORE_ENTITY_NAME,
            service_id=service.id,
            service_name=service.title,
            entity_count=len(service.entity_types),
            categories=self._categories(service),
            entity_name=entity_name,
        )
