"""
Typed views over the raw `interaction.data` payloads discord.py hands us.

The dispatcher routes on names and custom ids itself, so commands receive
the parsed options rather than going through `app_commands`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Application command option types
SUB_COMMAND = 1
SUB_COMMAND_GROUP = 2
ATTACHMENT = 11


@dataclass(frozen=True)
class AttachmentRef:
    id: int
    filename: str
    url: str
    size: int = 0


@dataclass
class InteractionCommand:
    """A slash command invocation with its options flattened."""

    name: str
    options: dict[str, Any] = field(default_factory=dict)
    subcommand: str | None = None
    attachments: dict[int, AttachmentRef] = field(default_factory=dict)
    focused: str | None = None

    @classmethod
    def from_data(cls, data: dict) -> InteractionCommand:
        options = data.get("options") or []
        subcommand = None

        # Walk into (at most) a group and a subcommand
        while len(options) == 1 and options[0].get("type") in (SUB_COMMAND, SUB_COMMAND_GROUP):
            node = options[0]
            subcommand = node["name"] if subcommand is None else f"{subcommand} {node['name']}"
            options = node.get("options") or []

        values = {}
        focused = None
        for option in options:
            values[option["name"]] = option.get("value")
            if option.get("focused"):
                focused = option["name"]

        attachments = {}
        resolved = (data.get("resolved") or {}).get("attachments") or {}
        for attachment_id, raw in resolved.items():
            attachments[int(attachment_id)] = AttachmentRef(
                id=int(attachment_id),
                filename=raw.get("filename", ""),
                url=raw.get("url", ""),
                size=raw.get("size", 0),
            )

        return cls(
            name=data.get("name", ""),
            options=values,
            subcommand=subcommand,
            attachments=attachments,
            focused=focused,
        )

    def get(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)

    def attachment(self, name: str) -> AttachmentRef | None:
        """Resolve an attachment option to the uploaded file."""
        value = self.options.get(name)
        if value is None:
            return None
        return self.attachments.get(int(value))


def component_custom_id(data: dict | None) -> str:
    return (data or {}).get("custom_id", "")


def modal_text_value(data: dict | None) -> str | None:
    """Value of the first text input in a submitted modal."""
    try:
        return data["components"][0]["components"][0]["value"]
    except (KeyError, IndexError, TypeError):
        return None
