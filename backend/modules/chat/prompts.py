"""
AI Manager System Prompts

Contains the default system prompt and the knowledge base augmentation used
by the chat flow. The prompt asks the model to answer with a single JSON
object so the session client can always branch on the same shape.
"""

from typing import Optional

# Default system prompt used when a request does not supply one
DEFAULT_SYSTEM_PROMPT = """
You are a helpful AI assistant for this starter kit application.

Your responsibilities:
- Provide clear, helpful responses to user questions
- Be conversational and friendly
- Explain concepts in simple terms when needed
- If you don't know something, be honest about it

Always return your responses in the following JSON format:

{
  "description": "<your response text here, markdown supported>"
}

Important guidelines:
- Never output raw text outside this JSON format
- Never wrap the JSON in markdown code fences
- The description should contain your complete response in plain text or markdown
- Be conversational, helpful, and clear in your responses
"""

KNOWLEDGE_BASE_HEADER = "--- Knowledge Base Context ---"


def get_system_prompt(context: Optional[str] = None, base_prompt: str = DEFAULT_SYSTEM_PROMPT) -> str:
    """
    Get the system prompt, augmented with retrieval context when available.

    Args:
        context: Knowledge base context text (optional)
        base_prompt: Prompt to augment

    Returns:
        Base prompt, followed by the context section if one was given
    """
    if not context:
        return base_prompt
    return f"{base_prompt}\n\n{KNOWLEDGE_BASE_HEADER}\n{context}"


def resolve_system_prompt(requested) -> str:
    """Use the requested prompt unless it is missing, blank or not a string."""
    if isinstance(requested, str) and requested.strip():
        return requested
    return DEFAULT_SYSTEM_PROMPT
