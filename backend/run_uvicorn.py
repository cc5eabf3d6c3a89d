#!/usr/bin/env python3
"""
Uvicorn runner script for the Tastebase realtime service.
"""

import os
import sys
from pathlib import Path

import uvicorn


def main():
    """Start the ASGI application with uvicorn."""
    backend_root = Path(__file__).parent
    project_root = backend_root.parent  # auth and db packages live here
    src_dir = backend_root / "src"

    for path in (project_root, src_dir):
        if str(path) not in sys.path:
            sys.path.insert(0, str(path))

    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("ENVIRONMENT", "development") == "development"

    uvicorn.run(
        "tastebase.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        reload=reload,
        reload_dirs=[str(src_dir)] if reload else None,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
