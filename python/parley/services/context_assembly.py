"""Context assembly for chat completions.

Builds the ordered turn list sent to the model:
1. One system turn: project instructions, the document-handling policy,
   and the files section when the project has files
2. Prior conversation turns, oldest first, with their stored roles
3. The new user message

No whole-context truncation happens here; file texts are already bounded
by the extraction cache.
"""

from dataclasses import dataclass

from parley.services.llm.types import Turn

DEFAULT_INSTRUCTIONS = "You are a helpful AI assistant."

DOCUMENT_POLICY = (
    "When files are provided below, use their content to answer. Never say you are "
    "unable to read or access a document. If a document's content appears incomplete, "
    "explain that this is due to upstream size or token limits and ask the user for "
    "specific page ranges or smaller excerpts."
)

FILES_HEADER = "=== Available Files Context ==="
FILES_FOOTER = "=== End Files Context ==="

DEGRADED_ADVISORY = (
    "Note: Some documents could not be fully processed. If their content cannot be "
    "referenced, it is likely due to upstream file or token limits for large documents."
)

FILES_CLOSING = (
    "You can reference these files in your responses when relevant to the user's questions."
)


@dataclass(frozen=True)
class ContextFile:
    """A project file as seen by the assembler."""

    filename: str
    media_type: str
    text: str
    degraded: bool = False


def render_files_section(files: list[ContextFile]) -> str:
    """Render the files block of the system turn. Empty when there are no files."""
    if not files:
        return ""

    parts = [FILES_HEADER]
    for file in files:
        if not file.text:
            # unreadable file: no block, but it still counts toward the advisory
            continue
        parts.append(f"--- File: {file.filename} ({file.media_type}) ---\n{file.text}")

    if any(file.degraded for file in files):
        parts.append(DEGRADED_ADVISORY)

    parts.append(FILES_FOOTER)
    parts.append(FILES_CLOSING)
    return "\n\n".join(parts)


def build_system_prompt(instructions: str | None, files: list[ContextFile]) -> str:
    base = (instructions or "").strip() or DEFAULT_INSTRUCTIONS
    sections = [base, DOCUMENT_POLICY]

    files_section = render_files_section(files)
    if files_section:
        sections.append(files_section)

    return "\n\n".join(sections)


def assemble_context(
    instructions: str | None,
    files: list[ContextFile],
    history: list[Turn],
    new_message: str,
) -> list[Turn]:
    """Assemble the turns for one completion call.

    Args:
        instructions: Project instructions; the default persona is used when empty.
        files: Project files with their cached text, in display order.
        history: Prior turns in chronological order.
        new_message: The user's new message.

    Returns:
        ``[system, *history, user]``.
    """
    turns = [Turn(role="system", content=build_system_prompt(instructions, files))]
    turns.extend(Turn(role=turn.role, content=turn.content) for turn in history)
    turns.append(Turn(role="user", content=new_message))
    return turns
