"""Global constants for the SAP OData MCP server."""

# Discovery (Stage 1) scores
SCORE_ENTITY_NAME = 0.95
"""Score for an entity whose name contains the query."""

SCORE_SERVICE_ID = 0.9
"""Score for a service whose identifier contains the query."""

SCORE_SERVICE_TITLE = 0.85
"""Score for a service whose title (but not identifier) contains the query."""

SCORE_UNFILTERED = 0.5
"""Fixed score for every service returned by an empty query."""

# Discovery result sizing
DEFAULT_DISCOVERY_LIMIT = 20
MIN_DISCOVERY_LIMIT = 1
MAX_DISCOVERY_LIMIT = 50

# Tool name allocation
MAX_TOOL_NAME_LENGTH = 64
"""Hard upper bound for generated tool names."""

ABBREVIATED_NAME_LIMIT = 60
"""Abbreviated names longer than this fall back to hashed fragments."""

NAME_FRAGMENT_LENGTH = 12
HASH_FRAGMENT_LENGTH = 8

# Payload fields that belong to the protocol, never to the entity
RESERVED_FIELDS = frozenset({"__metadata", "__deferred", "__key", "__uri"})

# Response Size Constants
MAX_RESPONSE_CHARS = 50_000
"""Maximum characters in a response before truncation (~12k tokens)."""

# Service discovery
DEFAULT_MAX_SERVICES = 50
DEFAULT_HTTP_TIMEOUT = 30.0
V2_CATALOG_PATH = "/sap/opu/odata/IWFND/CATALOGSERVICE;v=2/ServiceCollection"
