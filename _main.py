#!/usr/bin/env python3
"""Entry point that launches the FastAPI server via uvicorn."""

from __future__ import annotations

import os

import uvicorn

from config_helpers import USER_CONFIG_DIR
from notegen.logging_utils import setup_logging


def main() -> None:
    port = int(os.environ.get("PORT", "8000"))
    host = os.environ.get("HOST", "127.0.0.1")
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in {"1", "true", "yes"}
    log_dir = os.environ.get("NOTEGEN_LOG_DIR", str(USER_CONFIG_DIR / "logs"))
    _, log_path = setup_logging(log_dir, os.environ.get("NOTEGEN_LOG_LEVEL", "INFO").upper())
    print(f"Logging to {log_path}")
    uvicorn.run("notegen.server:app", host=host, port=port, reload=reload_flag)


if __name__ == "__main__":
    main()
