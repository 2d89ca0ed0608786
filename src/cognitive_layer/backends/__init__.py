"""Generation capability implementations."""

from .claude import ClaudeCapability, ClaudeConfig, ClaudeSession

__all__ = ["ClaudeCapability", "ClaudeConfig", "ClaudeSession"]
