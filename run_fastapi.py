#!/usr/bin/env python3
"""
Run the Outlook Helper API locally
"""

import os

import uvicorn

if __name__ == "__main__":
    os.environ.setdefault("ENVIRONMENT", "development")
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./data/outlook_helper.db")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("APP_PORT", "8080")),
        reload=True,
        log_level="info",
    )
