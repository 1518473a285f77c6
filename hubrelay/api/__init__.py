"""Falcon ASGI surface: health probes and the GitHub webhook receiver."""

from __future__ import annotations

from .app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
