"""mailblocks: block-tree editor core for composable email documents.

The package models an email layout as a flat map of uniquely identified
blocks and ships the operations that keep that tree consistent (insert,
duplicate, move, delete), plus a JSON persistence layer, a Typer CLI and a
small FastAPI editing surface.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.3.0"
