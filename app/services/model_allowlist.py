"""
Model allowlist validation.

Every entry point resolves the caller's model through `resolve_model` before
any provider call, so the service cannot be used to reach arbitrary provider
applications.
"""
from typing import Any, List, Optional

from app.core.config import Settings, get_settings
from app.services.exceptions import InvalidModelError


def get_supported_models(settings: Optional[Settings] = None) -> List[str]:
    """Return the configured allowlist, in configuration order."""
    settings = settings or get_settings()
    return list(settings.fal_supported_models)


def resolve_model(candidate: Any, settings: Optional[Settings] = None) -> str:
    """
    Resolve a requested model id against the allowlist.

    Blank, missing or non-string candidates resolve to the configured default.
    The resolved id (default included) must match an allowed id exactly after
    trimming.

    Raises:
        InvalidModelError: carrying the allowed ids for the error message
    """
    settings = settings or get_settings()
    if isinstance(candidate, str) and candidate.strip():
        model = candidate.strip()
    else:
        model = settings.default_model

    allowed = get_supported_models(settings)
    if model not in allowed:
        raise InvalidModelError(model, allowed)
    return model
