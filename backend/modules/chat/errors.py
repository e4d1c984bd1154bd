"""
Provider error classification.

Provider failures are matched by substring against a fixed set of
categories, each with a canned user-facing explanation. The first matching
rule wins; anything unmatched falls back to a generic message that echoes
the raw error text.
"""

from enum import StrEnum


class ProviderRoutingError(Exception):
    """Raised when a request cannot be routed to a provider (missing key, unknown provider)."""


class ErrorCategory(StrEnum):
    """User-facing provider error categories."""
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    INVALID_API_KEY = "invalid_api_key"
    INCORRECT_API_KEY = "incorrect_api_key"
    MODEL_NOT_FOUND = "model_not_found"
    BILLING = "billing"
    MISSING_API_KEY = "missing_api_key"
    AUTHENTICATION = "authentication"
    UNKNOWN = "unknown"


ERROR_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.QUOTA_EXCEEDED: (
        "⚠️ **Quota Exceeded**\n\n"
        "You have exceeded your current API quota. Please recharge your balance or upgrade "
        "your plan to continue using this service.\n\n"
        "**Next Steps:**\n"
        "- Check your billing details\n"
        "- Add credits to your account\n"
        "- Wait for the quota to reset\n"
        "- Consider upgrading to a paid plan"
    ),
    ErrorCategory.RATE_LIMITED: (
        "⚠️ **Rate Limit Exceeded**\n\n"
        "You're sending requests too quickly. Please wait a moment and try again.\n\n"
        "**Tip:** Space out your requests to avoid hitting rate limits."
    ),
    ErrorCategory.INVALID_API_KEY: (
        "🔑 **Invalid API Key**\n\n"
        "The API key you provided is not valid. Please check your API key and try again.\n\n"
        "**Steps to fix:**\n"
        "1. Go to your provider's dashboard\n"
        "2. Generate a new API key\n"
        "3. Update the key in your settings"
    ),
    ErrorCategory.INCORRECT_API_KEY: (
        "🔑 **Incorrect API Key**\n\n"
        "The API key provided is incorrect or has been revoked. Please verify your API key.\n\n"
        "**Steps to fix:**\n"
        "1. Check for typos in your API key\n"
        "2. Ensure the key hasn't expired\n"
        "3. Generate a new key if needed"
    ),
    ErrorCategory.MODEL_NOT_FOUND: (
        "🤖 **Model Not Found**\n\n"
        "The AI model you selected is not available or doesn't exist.\n\n"
        "**Solution:** Please select a different model from the available options."
    ),
    ErrorCategory.BILLING: (
        "💳 **Billing Issue**\n\n"
        "There's an issue with your account billing. Please check your payment method and "
        "account balance.\n\n"
        "**Action required:**\n"
        "- Verify your payment method\n"
        "- Add funds to your account\n"
        "- Contact your provider's support if needed"
    ),
    ErrorCategory.MISSING_API_KEY: (
        "🔑 **API Key Missing**\n\n"
        "No API key was provided. Please add your API key in the settings to use this feature."
    ),
    ErrorCategory.AUTHENTICATION: (
        "🔐 **Authentication Failed**\n\n"
        "Failed to authenticate with the AI provider. Please check your API credentials.\n\n"
        "**Common causes:**\n"
        "- Expired API key\n"
        "- Invalid permissions\n"
        "- Account access issues"
    ),
}

# Ordered rules: every group's substrings must all appear (AND), any group matches (OR)
_RULES: list[tuple[ErrorCategory, list[tuple[str, ...]]]] = [
    (ErrorCategory.QUOTA_EXCEEDED, [("quota",), ("resource_exhausted",)]),
    (ErrorCategory.RATE_LIMITED, [("rate limit",), ("too many requests",)]),
    (ErrorCategory.INVALID_API_KEY, [("invalid", "api key")]),
    (ErrorCategory.INCORRECT_API_KEY, [("incorrect api key",)]),
    (ErrorCategory.MODEL_NOT_FOUND, [("model", "not found")]),
    (ErrorCategory.BILLING, [("insufficient_quota",), ("billing",)]),
    (ErrorCategory.MISSING_API_KEY, [("no api key provided",)]),
    (ErrorCategory.AUTHENTICATION, [("authentication",), ("unauthorized",)]),
]


def classify_error(error_text: str) -> ErrorCategory:
    """
    Classify raw provider error text into a category.

    Args:
        error_text: Raw error message

    Returns:
        The first matching ErrorCategory, or UNKNOWN
    """
    lowered = (error_text or "").lower()
    for category, groups in _RULES:
        if any(all(needle in lowered for needle in group) for group in groups):
            return category
    return ErrorCategory.UNKNOWN


def describe_error(error: BaseException | str) -> str:
    """
    Map an exception (or its text) to a user-facing markdown explanation.
    """
    error_text = str(error) if str(error) else "Internal Server Error"
    category = classify_error(error_text)
    if category == ErrorCategory.UNKNOWN:
        return (
            f"❌ **An Error Occurred**\n\n{error_text}\n\n"
            "Please try again. If the problem persists, contact support."
        )
    return ERROR_MESSAGES[category]
