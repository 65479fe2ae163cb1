from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi_async_sqlalchemy import SQLAlchemyMiddleware, db
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.applications import Starlette

from app.database import db_manager


def bind_sessions(engine: AsyncEngine) -> None:
    """Point the global ``db`` proxy at ``engine`` without serving any request."""
    SQLAlchemyMiddleware(Starlette(), custom_engine=engine)


@asynccontextmanager
async def fastapi_sqlalchemy_context(commit_on_exit: bool = False) -> AsyncGenerator[None, None]:
    """Open a ``db`` session for code running outside the API, e.g. management commands."""
    bind_sessions(db_manager.init_db())
    async with db(commit_on_exit=commit_on_exit):
        yield
