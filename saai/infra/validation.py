"""Input validation and sanitization."""

import logging
import re

logger = logging.getLogger(__name__)

TENANT_ID_PATTERN = re.compile(r"[^a-zA-Z0-9\-_]")


def detect_prompt_injection(content: str) -> list:
    """
    Detect prompt injection patterns in content.

    Args:
        content: Message content to check

    Returns:
        List of detected pattern types (empty if none)
    """
    if not content:
        return []

    patterns = []
    content_lower = content.lower()

    meta_patterns = [
        r"ignore\s+(previous|all|the)\s+(instructions?|rules?|prompts?)",
        r"forget\s+(previous|all|the)\s+(instructions?|rules?|prompts?)",
        r"disregard\s+(previous|all|the)\s+(instructions?|rules?|prompts?)",
        r"you\s+are\s+now\s+(a|an)\s+",
        r"pretend\s+to\s+be",
    ]

    disclosure_patterns = [
        r"show\s+(me\s+)?(your\s+)?(system\s+)?(prompt|instructions?)",
        r"reveal\s+(your\s+)?(system\s+)?(prompt|instructions?)",
    ]

    # Attempts to reach another shop's catalog, carts or orders
    cross_tenant_patterns = [
        r"switch\s+to\s+tenant\s+",
        r"(another|other|different)\s+(tenant|store|shop)'?s?\s+(orders?|cart|customers?)",
    ]

    all_patterns = [
        ("meta_instruction", meta_patterns),
        ("disclosure_attempt", disclosure_patterns),
        ("cross_tenant_attempt", cross_tenant_patterns),
    ]

    for pattern_type, pattern_list in all_patterns:
        for pattern in pattern_list:
            if re.search(pattern, content_lower):
                patterns.append(pattern_type)
                break

    return patterns


def sanitize_message_content(content: str, max_length: int = 4000) -> str:
    """
    Sanitize a chat message before it reaches a prompt.

    Detected injection patterns are logged, not blocked.
    """
    if not content:
        return ""

    injection_patterns = detect_prompt_injection(content)
    if injection_patterns:
        logger.warning(
            f"Prompt injection patterns detected: {injection_patterns}. "
            f"Content length: {len(content)}"
        )

    if len(content) > max_length:
        content = content[:max_length] + "... [truncated]"

    # Remove control characters except newlines and tabs
    content = re.sub(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]', '', content)

    return content.strip()


def sanitize_tenant_id(tenant_id: str) -> str:
    """Strip everything but letters, digits, dash and underscore."""
    return TENANT_ID_PATTERN.sub("", tenant_id or "")


def validate_tenant_id(tenant_id: str) -> None:
    """
    Validate a tenant id used to build data file paths.

    Raises:
        ValueError: If validation fails
    """
    if not tenant_id or not isinstance(tenant_id, str):
        raise ValueError("Tenant ID must be a non-empty string")

    if sanitize_tenant_id(tenant_id) != tenant_id:
        raise ValueError("Tenant ID contains invalid characters")

    if len(tenant_id) > 128:
        raise ValueError("tenant_id too long")
