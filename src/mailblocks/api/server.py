"""
Uvicorn entry point: ``mailblocks-api`` or ``uvicorn mailblocks.api.server:app``.

``.env`` is loaded at import time, before the app is built, so the session
registry sees ``MAILBLOCKS_DOCUMENT_DIR`` and friends.
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from mailblocks.api.app import create_app
from mailblocks.core.settings import load_settings

load_dotenv(dotenv_path=Path(".env"))

app = create_app()


def main() -> None:
    """Serve the API on port 8000, reloading on code changes in dev."""
    cfg = load_settings()
    banner = {
        "environment": cfg.environment,
        "document_dir": cfg.document_dir.resolve(),
        "delete_policy": cfg.delete_policy,
        "autosave_delay": f"{cfg.autosave_delay:g}s",
    }
    print(f"{' mailblocks API ':-^56}")
    for key, value in banner.items():
        print(f"  {key:<15} {value}")
    print("-" * 56)

    uvicorn.run(
        "mailblocks.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=cfg.is_dev,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
