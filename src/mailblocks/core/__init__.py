"""Core package initializer for mailblocks.

Downstream code imports from the submodules directly:
    from mailblocks.core.settings import settings, load_settings, Settings, get_logger
    from mailblocks.core.tree.operations import duplicate_block, move_block
"""

from __future__ import annotations

__all__ = ["__doc__"]
