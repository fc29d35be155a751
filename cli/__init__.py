"""CLI package for interacting with the field alerts service."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` must keep resolving to the module, not the Typer instance:
# tests patch ``cli.app.ApiClient`` through that module path.

__all__ = []
