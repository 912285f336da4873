"""Command line views over the sensor telemetry dashboard."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` must keep resolving to the module rather than the Typer
# instance so dotted monkeypatch targets under it stay valid.

__all__ = []
