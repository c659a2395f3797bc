"""Backend transports for OData CRUD calls."""

from .base import Transport, TransportResponse
from .http import HttpTransport

__all__ = ["HttpTransport", "Transport", "TransportResponse"]
