"""
Knowledge base context from an OpenAI vector store.

Produces a short plain-text summary of the configured vector store that
the session client appends to its system prompt. Every outcome is a
context string; failures degrade to a fixed message.
"""

from typing import Optional

from openai import AsyncOpenAI

from config import settings
from utils.logging import get_logger

logger = get_logger("chat.vector_context")

NOT_CONFIGURED = "No vector store ID or openai API key found."
NO_DOCUMENTS = "No documents found in vector store."
UNAVAILABLE = "Vector store context unavailable."

TOP_FILES = 5


async def get_vector_context(
    vector_store_id: Optional[str] = None,
    api_key: Optional[str] = None,
    client: Optional[AsyncOpenAI] = None,
) -> str:
    """
    Summarize the files of the configured vector store.

    Args:
        vector_store_id: Vector store to inspect (defaults to settings)
        api_key: OpenAI key (defaults to settings)
        client: Preconfigured client (optional)

    Returns:
        Context text
    """
    vector_store_id = vector_store_id if vector_store_id is not None else settings.vector_store_id
    api_key = api_key if api_key is not None else settings.openai_api_key

    if not vector_store_id or (client is None and not api_key):
        return NOT_CONFIGURED

    try:
        openai_client = client or AsyncOpenAI(api_key=api_key)
        files = await openai_client.vector_stores.files.list(vector_store_id=vector_store_id)
        data = list(files.data or [])

        if not data:
            return NO_DOCUMENTS

        file_info = "\n".join(f"- {f.id}" for f in data[:TOP_FILES])
        return f"Found {len(data)} documents in vector store.\nTop files:\n{file_info}"
    except Exception as e:
        logger.error(f"Vector store context error: {e}")
        return UNAVAILABLE
