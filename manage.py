#!/usr/bin/env python3
"""
Outlook Helper management commands

Usage:
    python manage.py --mode MODE [--file PATH]

Modes:
    - init-db: Create the database tables and the operator account
    - list: List the stored emails of the operator account
    - import: Add the emails listed in a .txt/.csv file (same format as the upload endpoint)

Environment Variables:
    DATABASE_URL: SQLAlchemy database URL
    OUTLOOK_API_BASE_URL: Base URL of the mail gateway used to validate imported emails
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=True)
from app.container import ApplicationContainer  # noqa: E402
from app.controllers.audit.audit_log_writer import Actor  # noqa: E402
from app.database import db_manager  # noqa: E402
from app.db import fastapi_sqlalchemy_context  # noqa: E402
from logging_config import setup_logging  # noqa: E402

setup_logging()

logger = logging.getLogger(__name__)

# Global container instance
container = ApplicationContainer()

PAGE_SIZE = 100


async def init_db() -> None:
    """Create tables and the operator account."""
    async with fastapi_sqlalchemy_context(commit_on_exit=True):
        await db_manager.create_tables()
        operator = await container.controllers.auth_controller().ensure_operator()
        logger.info(f"Database ready; operator account: {operator.username} (id {operator.id})")
    await db_manager.close()


async def list_emails() -> None:
    """List all stored emails of the operator account."""
    async with fastapi_sqlalchemy_context():
        operator = await container.controllers.auth_controller().ensure_operator()
        credential_controller = container.controllers.credential_controller()

        offset = 0
        page = await credential_controller.search(operator.id, PAGE_SIZE, offset)
        if page.total == 0:
            logger.info("No emails found in database.")
        else:
            logger.info(f"Found {page.total} emails:")
        logger.info("-" * 80)
        index = 1
        while page.items:
            for credential in page.items:
                tags = ", ".join(tag.name for tag in credential.tags)
                logger.info(f"{index:3d}. {credential.email_address:40} {tags:20} {credential.remark}")
                index += 1
            offset += PAGE_SIZE
            page = await credential_controller.search(operator.id, PAGE_SIZE, offset)
        logger.info("-" * 80)
    await db_manager.close()


async def import_file(path: Path) -> None:
    """Import emails from a file on disk as the operator account."""
    async with fastapi_sqlalchemy_context(commit_on_exit=True):
        operator = await container.controllers.auth_controller().ensure_operator()
        actor = Actor(account_id=operator.id, ip_address="127.0.0.1", user_agent="manage.py")
        try:
            result = await container.controllers.credential_controller().import_file(
                actor, path.name, None, path.read_bytes()
            )
        finally:
            await container.controllers.gateway_client().close_session()

        logger.info(f"Imported {result.success_count} emails, {result.error_count} failed")
        for error in result.errors:
            logger.warning(error)
    await db_manager.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Outlook Helper management commands")
    parser.add_argument("--mode", choices=["init-db", "list", "import"], required=True, help="Command to run")
    parser.add_argument("--file", type=Path, help="File to import (import mode)")

    args = parser.parse_args()

    try:
        if args.mode == "init-db":
            asyncio.run(init_db())
        elif args.mode == "list":
            asyncio.run(list_emails())
        elif args.mode == "import":
            if args.file is None:
                parser.error("--file is required in import mode")
            asyncio.run(import_file(args.file))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception:
        logger.exception("Command failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
