"""Forge issue watcher that prepares task briefs for coding assistants."""

__version__ = "0.1.0"
