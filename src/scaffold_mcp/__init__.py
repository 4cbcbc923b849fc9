"""Scaffold MCP.

Typed tool dispatch for a project scaffolding assistant, with guarded
GitHub repository lifecycle operations.
"""

__version__ = "0.1.0"
