"""Splitting a scripted conversation into independent variants."""

from __future__ import annotations

from dataclasses import dataclass

from toolprobe.models.scenario import ConversationMessage


@dataclass
class ConversationVariant:
    """One independent sub-conversation. ``name`` is None for a plain script."""

    name: str | None
    messages: list[ConversationMessage]


def expand_conversation(conversation: list[ConversationMessage]) -> list[ConversationVariant]:
    """Partition a conversation into the sub-conversations to run.

    - With ``variant`` tags: one sub-conversation per distinct tag, in
      first-seen order. Untagged messages are shared by every variant and
      keep their position.
    - Without tags, user messages only: each message is its own variant,
      named ``message-N``.
    - Otherwise a single linear script.
    """
    if not conversation:
        return []

    names: list[str] = []
    for message in conversation:
        if message.variant and message.variant not in names:
            names.append(message.variant)

    if names:
        return [
            ConversationVariant(
                name=name,
                messages=[m for m in conversation if m.variant in (None, "", name)],
            )
            for name in names
        ]

    if len(conversation) > 1 and all(m.role == "user" for m in conversation):
        return [
            ConversationVariant(name=f"message-{index + 1}", messages=[message])
            for index, message in enumerate(conversation)
        ]

    return [ConversationVariant(name=None, messages=list(conversation))]
