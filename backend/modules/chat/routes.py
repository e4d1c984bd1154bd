"""
Chat routes for provider streaming.

Implements:
- POST /api/chat - Single-turn streaming chat endpoint (raw text body)
- GET /api/openai/vector-context - Knowledge base context for system prompts

Provider failures are returned as HTTP 200 with a JSON error body
({description, error: true, timestamp}) so the client always parses the
same shape; only genuine network failures surface as transport errors.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from modules.chat.errors import describe_error
from modules.chat.service import ProviderRouter, get_provider_router
from modules.chat.vector_context import get_vector_context
from schemas.chat import ChatCompletionRequest, ChatErrorResponse, VectorContextResponse
from utils.logging import get_logger, log_chat_event

logger = get_logger("chat.routes")

router = APIRouter()
openai_router = APIRouter()

RESPONSE_ID_HEADER = "x-response-id"


def error_response(error: BaseException) -> JSONResponse:
    """Build the 200 error body for a provider failure."""
    body = ChatErrorResponse(description=describe_error(error))
    return JSONResponse(status_code=200, content=body.model_dump())


@router.post("", response_model=None)
@router.post("/", response_model=None)
async def chat_endpoint(
    raw_request: Request,
    provider_router: ProviderRouter = Depends(get_provider_router),
):
    """
    Chat endpoint with raw text streaming.

    Accepts {systemPrompt, previousResponseId, userMessage, model,
    providerApiKey, providerName}, streams the provider output, and sets
    x-response-id for OpenAI responses.

    Returns:
        StreamingResponse (text/plain) or a JSON error body with status 200
    """
    try:
        body = await raw_request.json()
        request = ChatCompletionRequest.model_validate(body)
    except Exception as e:
        logger.error(f"Failed to parse chat request: {e}")
        return error_response(e)

    logger.info(
        f"Chat request: provider={request.provider_name}, model={request.model}, "
        f"message_length={len(request.user_message)}"
    )

    try:
        stream = await provider_router.open_stream(request)
    except Exception as e:
        logger.error(f"Chat request failed: {e}", exc_info=True)
        log_chat_event("failed", provider=request.provider_name, model=request.model, error=str(e))
        return error_response(e)

    headers = {
        "Cache-Control": "no-cache",
        "X-Accel-Buffering": "no",  # Disable nginx buffering
    }
    if stream.response_id:
        headers[RESPONSE_ID_HEADER] = stream.response_id

    return StreamingResponse(
        stream.iter_text(),
        media_type="text/plain; charset=utf-8",
        headers=headers,
    )


@openai_router.get("/vector-context", response_model=VectorContextResponse)
async def vector_context():
    """
    Knowledge base context summary.

    Always returns 200 with a context string, even when the vector store
    is not configured or unreachable.
    """
    context = await get_vector_context()
    return VectorContextResponse(context=context)
