"""Forge API client."""

from issue_agent.forge.client import (
    ForgeError,
    GitHubClient,
    NonRetryableForgeError,
    TemporaryForgeError,
)

__all__ = [
    "ForgeError",
    "GitHubClient",
    "NonRetryableForgeError",
    "TemporaryForgeError",
]
