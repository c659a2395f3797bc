"""Typed data models for OData services and their categorization."""

from .categories import Categorizer, Category, categorize
from .models import EntityType, NavigationProperty, Property, Service, ServiceMetadata

__all__ = [
    "Categorizer",
    "Category",
    "EntityType",
    "NavigationProperty",
    "Property",
    "Service",
    "ServiceMetadata",
    "categorize",
]
