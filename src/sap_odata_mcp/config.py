"""Environment-driven settings for the server and service discovery."""

from __future__ import annotations

import fnmatch
import os
import re
from dataclasses import dataclass, field
from typing import Any

from .constants import DEFAULT_HTTP_TIMEOUT, DEFAULT_MAX_SERVICES
from .exceptions import ConfigurationError

TOOL_MODES = ("hierarchical", "crud")

# Above this many services discovery and tool listing get slow
MAX_SERVICES_WARNING_THRESHOLD = 200


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str = "") -> list[str]:
    return [p.strip() for p in os.environ.get(name, default).split(",") if p.strip()]


def _is_regex(pattern: str) -> bool:
    return len(pattern) > 2 and pattern.startswith("/") and pattern.endswith("/")


def matches_pattern(service_id: str, pattern: str) -> bool:
    """Match a service id against an exact name, a glob or a ``/regex/``.

    Globs and regexes are case-insensitive; an invalid regex never matches.
    """
    if _is_regex(pattern):
        try:
            return re.search(pattern[1:-1], service_id, re.IGNORECASE) is not None
        except re.error:
            return False
    if "*" in pattern or "?" in pattern:
        return fnmatch.fnmatchcase(service_id.lower(), pattern.lower())
    return service_id == pattern


@dataclass
class Settings:
    """Server configuration.

    Read from the environment with ``from_env()``; every field has a default so
    tests can build one directly.
    """

    catalog_path: str | None = None
    base_url: str | None = None
    token: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    timeout: float = DEFAULT_HTTP_TIMEOUT
    tool_mode: str = "hierarchical"
    allow_all_services: bool = False
    service_patterns: list[str] = field(default_factory=lambda: ["*"])
    exclusion_patterns: list[str] = field(default_factory=list)
    max_services: int = DEFAULT_MAX_SERVICES
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        try:
            timeout = float(os.environ.get("ODATA_MCP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
            max_services = int(os.environ.get("ODATA_MAX_SERVICES", DEFAULT_MAX_SERVICES))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        return cls(
            catalog_path=os.environ.get("ODATA_MCP_CATALOG_PATH") or None,
            base_url=os.environ.get("ODATA_MCP_BASE_URL") or None,
            token=os.environ.get("ODATA_MCP_TOKEN") or None,
            username=os.environ.get("ODATA_MCP_USERNAME") or None,
            password=os.environ.get("ODATA_MCP_PASSWORD") or None,
            timeout=timeout,
            tool_mode=os.environ.get("ODATA_MCP_TOOL_MODE", "hierarchical").strip().lower(),
            allow_all_services=_env_bool("ODATA_ALLOW_ALL"),
            service_patterns=_env_list("ODATA_SERVICE_PATTERNS", "*"),
            exclusion_patterns=_env_list("ODATA_EXCLUSION_PATTERNS"),
            max_services=max_services,
            log_level=os.environ.get("LOGGING_LEVEL", "INFO"),
        )

    def is_service_allowed(self, service_id: str) -> bool:
        """Whether discovery should keep a service.

        Exclusions win over inclusions. With no inclusion patterns everything
        not excluded is kept.
        """
        if self.allow_all_services:
            return True
        if any(matches_pattern(service_id, p) for p in self.exclusion_patterns):
            return False
        if not self.service_patterns:
            return True
        return any(matches_pattern(service_id, p) for p in self.service_patterns)

    def validate(self) -> tuple[list[str], list[str]]:
        """Return ``(errors, warnings)`` for the current settings."""
        errors: list[str] = []
        warnings: list[str] = []

        if self.max_services <= 0:
            errors.append("Maximum services must be greater than 0")
        if self.max_services > MAX_SERVICES_WARNING_THRESHOLD:
            warnings.append(
                f"Maximum services is very high (>{MAX_SERVICES_WARNING_THRESHOLD}), "
                "this may impact performance"
            )
        if self.tool_mode not in TOOL_MODES:
            errors.append(
                f"Unknown tool mode {self.tool_mode!r}, expected one of: {', '.join(TOOL_MODES)}"
            )
        if self.timeout <= 0:
            errors.append("HTTP timeout must be greater than 0")

        if not self.allow_all_services:
            if not self.service_patterns:
                warnings.append(
                    "No service patterns defined - all services will be included (except exclusions)"
                )
            for pattern in [*self.service_patterns, *self.exclusion_patterns]:
                if _is_regex(pattern):
                    try:
                        re.compile(pattern[1:-1], re.IGNORECASE)
                    except re.error as e:
                        errors.append(f"Invalid regex pattern: {pattern} - {e}")

        return errors, warnings

    def ensure_valid(self) -> list[str]:
        """Raise ConfigurationError on any error; return the warnings otherwise."""
        errors, warnings = self.validate()
        if errors:
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(errors)}", errors=errors, warnings=warnings
            )
        return warnings

    def describe(self) -> str:
        """Human-readable summary of the service filter."""
        if self.allow_all_services:
            return "All OData services are allowed"
        if self.service_patterns:
            text = f"Services matching patterns: {', '.join(self.service_patterns)}"
        else:
            text = "All services are included"
        if self.exclusion_patterns:
            text += f" (excluding: {', '.join(self.exclusion_patterns)})"
        return f"{text}. Maximum {self.max_services} services."

    def filter_summary(self) -> dict[str, Any]:
        errors, warnings = self.validate()
        return {
            "allowAllServices": self.allow_all_services,
            "servicePatterns": list(self.service_patterns),
            "exclusionPatterns": list(self.exclusion_patterns),
            "maxServices": self.max_services,
            "validation": {"valid": not errors, "errors": errors, "warnings": warnings},
            "description": self.describe(),
        }
