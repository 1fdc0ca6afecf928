"""Reference knowledge for the FIP diagnostic assistant.

Immutable data loaded once per process and rendered into the system prompt.
"""

from src.knowledge.base import (
    ASSISTANT_INSTRUCTIONS,
    build_system_prompt,
    knowledge_text,
    load_knowledge_base,
)

__all__ = [
    "ASSISTANT_INSTRUCTIONS",
    "build_system_prompt",
    "knowledge_text",
    "load_knowledge_base",
]
