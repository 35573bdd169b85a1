"""Database connection management"""

import json
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

from core.exceptions import DatabaseError
from config import settings


class DatabaseManager:
    """PostgreSQL connection manager"""

    def __init__(self, connection_string: Optional[str] = None):
        self.connection_string = connection_string or settings.DATABASE_URL

        if not self.connection_string:
            raise DatabaseError("No database connection string provided")

    @asynccontextmanager
    async def get_connection(self):
        """Open a connection with JSON codecs registered; closed on exit"""
        try:
            conn = await asyncpg.connect(self.connection_string)
        except Exception as e:
            raise DatabaseError(f"Database connection failed: {e}") from e

        try:
            await conn.set_type_codec(
                "jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog"
            )
            yield conn
        finally:
            await conn.close()

    async def execute(self, query: str, *args) -> list:
        """Execute query and return results"""
        async with self.get_connection() as conn:
            return await conn.fetch(query, *args)

    async def execute_one(self, query: str, *args):
        """Execute query and return single result"""
        async with self.get_connection() as conn:
            return await conn.fetchrow(query, *args)

    async def execute_write(self, query: str, *args) -> str:
        """Execute write query (INSERT, UPDATE, DELETE, DDL)"""
        async with self.get_connection() as conn:
            return await conn.execute(query, *args)
