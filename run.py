#!/usr/bin/env python3
"""
ThreadCraft Workflow - Development Server Runner
This script sets up the Python path, loads .env and starts the server
"""

import logging
import os
import sys

# Add the 'src' directory to Python path so imports work correctly
project_root = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(project_root, 'src')

if src_path not in sys.path:
    sys.path.insert(0, src_path)


def main() -> None:
    from dotenv import load_dotenv
    load_dotenv(os.path.join(project_root, '.env'))

    import uvicorn

    from config.settings import get_settings, validate_startup_security
    from middleware.correlation import configure_correlation_logging

    settings = get_settings()
    configure_correlation_logging(level=logging.DEBUG if settings.debug else logging.INFO)
    validate_startup_security(settings)

    uvicorn.run(
        "web.app:create_app",
        factory=True,
        host=os.getenv("HOST", settings.api_host),
        port=int(os.getenv("PORT", str(settings.api_port))),
        reload=settings.is_development,
        reload_dirs=[src_path],
        log_level="info",
    )


if __name__ == "__main__":
    main()
