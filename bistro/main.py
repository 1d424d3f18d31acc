"""
Bistro - Main entry point.

Starts the API server with uvicorn using the settings from the
environment (see bistro.config).
"""

from __future__ import annotations

import uvicorn

from bistro.config import get_settings


def main():
    """Main entry point."""
    settings = get_settings()
    uvicorn.run(
        "bistro.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
    )


if __name__ == "__main__":
    main()
