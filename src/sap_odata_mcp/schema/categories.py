"""Business categorization of services by keyword heuristics.

Categories are derived from a service's identifier, title and description by
lower-cased substring containment. They are recomputed whenever a catalog is
built and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..logging_config import create_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Service

logger = create_logger(__name__)


class Category(str, Enum):
    BUSINESS_PARTNER = "business-partner"
    SALES = "sales"
    FINANCE = "finance"
    PROCUREMENT = "procurement"
    HR = "hr"
    LOGISTICS = "logistics"
    ALL = "all"

    @classmethod
    def coerce(cls, value: str | Category | None) -> Category:
        """Map any input to a category; unknown or empty values become ``ALL``."""
        if isinstance(value, Category):
            return value
        if not value:
            return cls.ALL
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.ALL


@dataclass(frozen=True)
class CategoryRule:
    """Keywords matched against each lower-cased service field."""

    id_keywords: tuple[str, ...] = ()
    title_keywords: tuple[str, ...] = ()
    description_keywords: tuple[str, ...] = ()

    def matches(self, service_id: str, title: str, description: str) -> bool:
        return (
            any(k in service_id for k in self.id_keywords)
            or any(k in title for k in self.title_keywords)
            or any(k in description for k in self.description_keywords)
        )


CATEGORY_RULES: dict[Category, CategoryRule] = {
    Category.BUSINESS_PARTNER: CategoryRule(
        id_keywords=("business_partner", "bp_", "customer", "supplier"),
        title_keywords=("business partner", "customer", "supplier"),
    ),
    Category.SALES: CategoryRule(
        id_keywords=("sales", "order", "quotation", "opportunity"),
        title_keywords=("sales", "order"),
        description_keywords=("sales",),
    ),
    Category.FINANCE: CategoryRule(
        id_keywords=("finance", "accounting", "payment", "invoice", "gl_", "ar_", "ap_"),
        title_keywords=("finance", "accounting", "payment"),
    ),
    Category.PROCUREMENT: CategoryRule(
        id_keywords=("purchase", "procurement", "vendor", "po_"),
        title_keywords=("procurement", "purchase", "vendor"),
    ),
    Category.HR: CategoryRule(
        id_keywords=("employee", "hr_", "personnel", "payroll"),
        title_keywords=("employee", "human", "personnel"),
    ),
    Category.LOGISTICS: CategoryRule(
        id_keywords=("logistics", "warehouse", "inventory", "material", "wm_", "mm_"),
        title_keywords=("logistics", "material"),
    ),
}


def categorize(service: Service) -> frozenset[Category]:
    """Return the categories a service belongs to, ``{ALL}`` if none match."""
    service_id = service.id.lower()
    title = service.title.lower()
    description = service.description.lower()

    matched = frozenset(
        category
        for category, rule in CATEGORY_RULES.items()
        if rule.matches(service_id, title, description)
    )
    return matched or frozenset({Category.ALL})


def sorted_categories(categories: Iterable[Category]) -> list[str]:
    """Category values in declaration order, for stable output."""
    order = list(Category)
    return [c.value for c in sorted(categories, key=order.index)]


class Categorizer:
    """Per-catalog cache of service categories, keyed by service identifier."""

    def __init__(self, services: Iterable[Service]) -> None:
        self._categories: dict[str, frozenset[Category]] = {
            service.id: categorize(service) for service in services
        }
        logger.debug(f"Categorized {len(self._categories)} services")

    def categories_for(self, service_id: str) -> frozenset[Category]:
        return self._categories.get(service_id, frozenset({Category.ALL}))

    def in_category(self, service_id: str, category: Category) -> bool:
        if category is Category.ALL:
            return True
        return category in self.categories_for(service_id)

    def all_categories(self) -> list[str]:
        """Distinct categories present in the catalog."""
        seen: set[Category] = set()
        for cats in self._categories.values():
            seen.update(cats)
        return sorted_categories(seen)
