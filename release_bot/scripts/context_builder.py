"""
Context builder for the release bot.

Provides build_context(), the single entry point for constructing the
context used by bot message templates, and release_context() which fills
it from a release descriptor and the process settings.
"""

from typing import Any, Dict

from .bot_context import BotContext
from .command import Command
from .config import Settings
from .release_information import ReleaseInformation


def build_context(**kwargs: Any) -> Dict[str, Any]:
    """
    Construct a unified context dict for template rendering.

    Accepts any keyword arguments matching BotContext fields. Unknown
    kwargs are ignored.

    Guarantees:
    1. Output dict contains ALL keys from BotContext schema
    2. No None values, every field has a type-appropriate default
    3. Boolean flags and URLs derived automatically from string fields

    Returns:
        Dict with all BotContext fields, ready for pystache rendering.
    """
    known_fields = {k for k in BotContext.__dataclass_fields__}
    filtered = {k: v for k, v in kwargs.items() if k in known_fields and v is not None}

    ctx = BotContext(**filtered)
    ctx.derive_flags()
    return ctx.to_dict()


def release_context(
    settings: Settings,
    release: ReleaseInformation,
    **kwargs: Any
) -> Dict[str, Any]:
    """
    Build the template context for a release.

    Args:
        settings: Process settings (repository, announcement channels)
        release: Release descriptor
        **kwargs: Step-specific BotContext fields

    Returns:
        Dict with all BotContext fields
    """
    values: Dict[str, Any] = {
        "project_name": settings.project_name,
        "repository": settings.repository,
        "repository_url": settings.repository_url,
        "main_branch": settings.main_branch,
        "mailing_list": settings.mailing_list,
        "chat_url": settings.chat_url,
        "workflow_run_url": settings.workflow_run_url,
        "lts_branches": [{"branch": b} for b in settings.lts_branches],
        "branch": release.branch,
        "version": release.version or "",
        "qualifier": release.qualifier,
        "major": release.major,
        "maintenance": release.maintenance,
        "is_first_cr": release.is_first_cr(),
        "auto_command": Command.AUTO.full_command,
        "manual_command": Command.MANUAL.full_command,
    }
    values.update(kwargs)
    return build_context(**values)
