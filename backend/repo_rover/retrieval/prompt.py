"""Prompt assembly for retrieval-augmented answers."""

from __future__ import annotations

from typing import Sequence

from repo_rover.ingest.types import RetrievedChunk

ASSISTANT_NAME = "RepoRover"
NO_CONTEXT_MARKER = "(no relevant code was found in the indexed repository)"
NOT_IN_CONTEXT_REPLY = "I don't have enough info in the code context."

_SEPARATOR = "\n---\n"


def build_context(chunks: Sequence[RetrievedChunk], max_chars: int) -> str:
    """Render chunks as ``FILE:`` blocks, stopping before ``max_chars`` is exceeded.

    The first chunk is always kept, truncated if it alone is too long.
    """
    blocks: list[str] = []
    used = 0
    for chunk in chunks:
        block = f"FILE: {chunk.path}\nCODE:\n{chunk.content}\n"
        cost = len(block) + (len(_SEPARATOR) if blocks else 0)
        if used + cost > max_chars:
            if not blocks:
                blocks.append(block[:max_chars])
            break
        blocks.append(block)
        used += cost
    return _SEPARATOR.join(blocks)


def build_prompt(question: str, context: str) -> str:
    return (
        f"You are an expert AI developer assistant named '{ASSISTANT_NAME}'.\n"
        "Use the following code context to answer the user's question accurately.\n"
        f'If the answer is not in the context, say "{NOT_IN_CONTEXT_REPLY}"\n'
        "Do not invent files, functions or behavior that the context does not show.\n\n"
        f'USER QUESTION: "{question}"\n\n'
        "--- CODE CONTEXT START ---\n"
        f"{context or NO_CONTEXT_MARKER}\n"
        "--- CODE CONTEXT END ---\n\n"
        "Your answer (be technical and concise):"
    )


__all__ = ["build_context", "build_prompt", "NO_CONTEXT_MARKER", "NOT_IN_CONTEXT_REPLY"]
