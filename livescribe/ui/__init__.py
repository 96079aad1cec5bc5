"""Terminal views for LiveScribe."""

from .status_view import render_status

__all__ = ["render_status"]
