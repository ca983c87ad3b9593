"""Database connection and lifecycle management for the panel state store."""

import databases

from askpanel.core.config import settings

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS StateEntry (
    key TEXT PRIMARY KEY,
    valueJson TEXT NOT NULL,
    updatedAt TEXT NOT NULL
)
"""

# Create database connection
database = databases.Database(settings.database_url)


async def init_db(db: databases.Database) -> None:
    """Create the state table if it does not exist yet."""
    await db.execute(SCHEMA_SQL)


async def connect_db():
    """Connect to database and ensure the schema on startup."""
    if not database.is_connected:
        await database.connect()
    await init_db(database)


async def disconnect_db():
    """Disconnect from database on shutdown."""
    if database.is_connected:
        await database.disconnect()
