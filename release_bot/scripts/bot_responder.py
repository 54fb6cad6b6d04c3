"""
Markdown rendering of the comments the bot posts on a release issue.

Each message lives in templates/bot_messages/<name>.md and is rendered
with pystache. Every comment posted on the issue starts with a hidden
marker naming the release, so a bot comment never begins with an
operator command.
"""

import re
from pathlib import Path
from typing import Any, Dict, Optional

import pystache

TEMPLATE_SUFFIX = ".md"

# false sections leave runs of empty lines behind
BLANK_LINES = re.compile(r"\n{3,}")


class BotResponderError(Exception):
    """Base exception for message rendering."""
    pass


class TemplateNotFoundError(BotResponderError):
    """No template file carries the requested message name."""
    pass


class BotResponder:
    """
    Renders release issue comments.

    Rendering is strict: a tag absent from the context is an error rather
    than an empty string. Values are inserted as-is since the output is
    Markdown, not HTML.
    """

    DEFAULT_TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "bot_messages"

    MARKER_FORMAT = "<!-- release-bot:{release_id} -->"

    def __init__(self, template_dir: Optional[Path] = None):
        self.template_dir = template_dir or self.DEFAULT_TEMPLATE_DIR
        self.renderer = pystache.Renderer(missing_tags='strict', escape=lambda value: value)

    @classmethod
    def marker(cls, release_id: str) -> str:
        """Hidden first line of every comment about a release (e.g. "3.2-CR1")."""
        return cls.MARKER_FORMAT.format(release_id=release_id)

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render one message.

        Args:
            template_name: Message name, the template file without its suffix
            context: Tag values, usually built by context_builder

        Raises:
            TemplateNotFoundError: If the message has no template
            pystache.common.MissingTags: If the context lacks a tag
        """
        path = self.template_dir / f"{template_name}{TEMPLATE_SUFFIX}"
        if not path.is_file():
            raise TemplateNotFoundError(f"No template for message {template_name} in {self.template_dir}")

        rendered = self.renderer.render(path.read_text(), context)
        return BLANK_LINES.sub("\n\n", rendered).strip()

    def render_with_marker(self, template_name: str, context: Dict[str, Any], release_id: str) -> str:
        """Render a message ready to be posted on the issue of the release."""
        return f"{self.marker(release_id)}\n{self.render(template_name, context)}"
