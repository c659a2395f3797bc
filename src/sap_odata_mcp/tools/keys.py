"""Key expressions, query options and payload filtering for entity requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..constants import RESERVED_FIELDS
from ..exceptions import MissingKeyError
from ..logging_config import create_logger

if TYPE_CHECKING:
    from ..schema import EntityType, Property

logger = create_logger(__name__)

_GUID_TYPES = ("guid", "uuid")
_NUMERIC_PREFIXES = ("int", "decimal", "double", "float")
_DATE_PREFIXES = ("datetime", "date")


def format_key_value(prop_type: str, value: Any) -> str:
    """Format one key value for use inside a key expression.

    Examples:
        ("Edm.Guid", "abc-123") → "guid'abc-123'"
        ("Edm.Int32", 42) → "42"
        ("Edm.DateTime", "2024-01-01T00:00:00") → "datetime'2024-01-01T00:00:00'"
        ("Edm.String", "O'Brien") → "'O''Brien'"
    """
    text = str(value)
    local_name = (prop_type or "").rsplit(".", 1)[-1].lower()
    if local_name in _GUID_TYPES:
        return f"guid'{text}'"
    if local_name.startswith(_NUMERIC_PREFIXES):
        return text
    if local_name.startswith(_DATE_PREFIXES):
        return f"datetime'{text}'"
    escaped = text.replace("'", "''")
    return f"'{escaped}'"


def build_key_expression(entity: EntityType, parameters: dict[str, Any]) -> str:
    """Build the key expression identifying one entity instance.

    Keys are taken in declared order. Every key that is absent or ``None`` is
    reported in a single MissingKeyError.
    """
    if not entity.keys:
        raise MissingKeyError(entity.name, [], [])

    missing = [k for k in entity.keys if parameters.get(k) is None]
    if missing:
        raise MissingKeyError(entity.name, missing, list(entity.keys))

    if len(entity.keys) == 1:
        key = entity.keys[0]
        return format_key_value(_key_type(entity.get_property(key)), parameters[key])

    return ",".join(
        f"{key}={format_key_value(_key_type(entity.get_property(key)), parameters[key])}"
        for key in entity.keys
    )


def _key_type(prop: Property | None) -> str:
    return prop.type if prop is not None else "Edm.String"


def clean_payload(
    entity: EntityType, data: dict[str, Any], *, strip_keys: bool
) -> dict[str, Any]:
    """Drop reserved, unknown and (optionally) key fields from a write payload.

    ``None`` values are kept so a caller can clear a nullable field.
    """
    declared = set(entity.property_names)
    cleaned: dict[str, Any] = {}
    for name, value in data.items():
        if name in RESERVED_FIELDS:
            continue
        if name not in declared:
            logger.warning(f"Unknown property '{name}' for entity '{entity.name}', skipping")
            continue
        if strip_keys and entity.is_key(name):
            logger.debug(f"Skipping key property '{name}' in create payload")
            continue
        cleaned[name] = value
    return cleaned


@dataclass(frozen=True)
class QueryOptions:
    """Entity-set query options; empty values are never sent."""

    filter: str | None = None
    select: str | None = None
    expand: str | None = None
    orderby: str | None = None
    top: int | None = None
    skip: int | None = None

    def to_params(self) -> dict[str, str | int]:
        params: dict[str, str | int] = {}
        for name in ("filter", "select", "expand", "orderby"):
            value = getattr(self, name)
            if value:
                params[f"${name}"] = value
        if isinstance(self.top, int) and not isinstance(self.top, bool) and self.top > 0:
            params["$top"] = self.top
        if isinstance(self.skip, int) and not isinstance(self.skip, bool) and self.skip >= 0:
            params["$skip"] = self.skip
        return params

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> QueryOptions:
        """Accept either bare names (``filter``) or OData names (``$filter``)."""
        if not data:
            return cls()
        values = {k.lstrip("$").lower(): v for k, v in data.items()}
        return cls(
            filter=values.get("filter"),
            select=values.get("select"),
            expand=values.get("expand"),
            orderby=values.get("orderby"),
            top=_as_int(values.get("top")),
            skip=_as_int(values.get("skip")),
        )


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
