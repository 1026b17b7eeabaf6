"""Exact-path routing for handlers that sit behind the middleware chain."""

from perch.routing.router import Route, Router

__all__ = ["Route", "Router"]
