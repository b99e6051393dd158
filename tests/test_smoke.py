"""
Smoke tests for package structure and availability.

Scope
-----
These tests strictly verify that the package is installed correctly in the
environment and that top-level modules are importable.
"""

from __future__ import annotations

import importlib

from mailblocks import __version__


def test_package_importable() -> None:
    """Ensure the top-level package and its namespace subpackages import."""
    for name in (
        "mailblocks",
        "mailblocks.core.tree",
        "mailblocks.core.store.memory",
        "mailblocks.core.store.storage",
        "mailblocks.core.contracts.validation",
        "mailblocks.api.app",
    ):
        assert importlib.import_module(name) is not None


def test_version_is_set() -> None:
    """Ensure the package exposes a valid version string."""
    assert isinstance(__version__, str)
    assert len(__version__) > 0


def test_cli_module_exposes_app() -> None:
    """The `mailblocks` console script points at `mailblocks.cli:app`."""
    cli = importlib.import_module("mailblocks.cli")
    assert hasattr(cli, "app")
    assert callable(cli.app)
