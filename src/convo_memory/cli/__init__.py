"""
CLI module for the conversation memory manager.

Provides command-line interface using Typer:
- new / say / show / context / usage / list: conversation workflow
- compress / archive / delete / purge: lifecycle management
- settings / config: configuration management
"""

from convo_memory.cli.main import app

__all__ = ["app"]
