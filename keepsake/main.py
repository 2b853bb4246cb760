"""
Keepsake API - main entry point.

    python -m keepsake.main
    uvicorn keepsake.main:app --reload
"""

from __future__ import annotations

import uvicorn

from keepsake.api.app import create_app
from keepsake.config import get_settings

app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "keepsake.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
    )


if __name__ == "__main__":
    main()
