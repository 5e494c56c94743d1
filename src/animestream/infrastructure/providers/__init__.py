from .detector import correct_embed_url, detect_provider
from .headers import DEFAULT_USER_AGENT, apply_header_policy, headers_for

__all__ = [
    "DEFAULT_USER_AGENT",
    "apply_header_policy",
    "correct_embed_url",
    "detect_provider",
    "headers_for",
]
