"""
Database migration: Add ordering index to ai_messages

Message history is always read per conversation in creation order. This
migration adds a composite index on (conversation_id, created_at) and
backfills last_message_at for conversations that predate the column.

To run: python backend/migrations/add_message_ordering_index.py
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text
from database import engine
from utils.logging import get_logger

logger = get_logger("migration")

INDEX_NAME = "ix_ai_messages_conversation_created"


async def migrate():
    """Add (conversation_id, created_at) index and backfill last_message_at."""

    logger.info("Starting migration: add ordering index to ai_messages")

    try:
        async with engine.begin() as conn:
            await conn.execute(text(f"""
                CREATE INDEX IF NOT EXISTS {INDEX_NAME}
                ON ai_messages (conversation_id, created_at)
            """))
            logger.info(f"Index '{INDEX_NAME}' created/verified")

            result = await conn.execute(text("""
                UPDATE ai_conversations
                SET last_message_at = (
                    SELECT MAX(m.created_at)
                    FROM ai_messages m
                    WHERE m.conversation_id = ai_conversations.id
                )
                WHERE last_message_at IS NULL
                  AND EXISTS (
                    SELECT 1 FROM ai_messages m
                    WHERE m.conversation_id = ai_conversations.id
                  )
            """))
            logger.info(f"Backfilled last_message_at for {result.rowcount} conversations")

        logger.info("Migration completed successfully")

    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    asyncio.run(migrate())
