"""Key/value state queries."""

from datetime import datetime, timezone
from typing import Any, Optional
import databases
import json


async def get_value(db: databases.Database, key: str) -> Optional[Any]:
    """Get the decoded value stored under key, or None if never written."""
    query = "SELECT valueJson FROM StateEntry WHERE key = :key"
    row = await db.fetch_one(query, {"key": key})

    if not row:
        return None

    return json.loads(row["valueJson"])


async def set_value(db: databases.Database, key: str, value: Any) -> None:
    """Insert or replace the value stored under key."""
    query = """
        INSERT INTO StateEntry (key, valueJson, updatedAt)
        VALUES (:key, :value_json, :updated_at)
        ON CONFLICT(key) DO UPDATE SET
            valueJson = excluded.valueJson,
            updatedAt = excluded.updatedAt
    """

    await db.execute(
        query,
        {
            "key": key,
            "value_json": json.dumps(value),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
    )


async def delete_value(db: databases.Database, key: str) -> None:
    """Remove key; a missing key is not an error."""
    query = "DELETE FROM StateEntry WHERE key = :key"
    await db.execute(query, {"key": key})
