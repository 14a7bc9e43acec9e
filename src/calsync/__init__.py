"""Session and calendar synchronisation core for the calendar client."""

from __future__ import annotations

from .services.context import ServiceContext as ServiceContext

__all__ = ["ServiceContext"]
