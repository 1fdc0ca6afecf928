"""Static FIP reference knowledge embedded into every prompt.

Sources: ABCD Guidelines 2024, UC Davis, Cornell, and FIP Warriors India x
FSGI Foundation. The data has no behavior; it is loaded once from the bundled
JSON resource and exposed read-only.
"""

import json
import logging
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

_KNOWLEDGE_FILE = Path(__file__).parent / "fip_knowledge.json"

ASSISTANT_INSTRUCTIONS = """\
You are an FIP (Feline Infectious Peritonitis) diagnostic assistant for veterinarians \
and cat caregivers.

Use the reference knowledge base below together with the case details, bloodwork, \
imaging, and documents the user shares.

- Assess the likelihood of FIP and which clinical form (wet, pleural, dry, ocular, \
neurological) fits the findings.
- Compare lab values against the bloodwork indicators and critical thresholds, and \
apply the scoring systems when enough data is available.
- Suggest the next diagnostic steps following the diagnostic algorithms and \
recommended samples.
- Name relevant differential diagnoses and the tests that separate them.
- When FIP is likely, summarize treatment protocols, dosing by form, and monitoring.
- Say clearly when information is missing and ask for it.
- Always remind the user that a licensed veterinarian must confirm any diagnosis \
and treatment decision.

Format replies in markdown with short headings and bullet lists."""


def _freeze(value: Any) -> Any:
    """Recursively convert dicts and lists into read-only equivalents."""
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


@lru_cache(maxsize=1)
def load_knowledge_base() -> Mapping[str, Any]:
    """Load the bundled knowledge base.

    Returns:
        Read-only nested mapping of knowledge sections.
    """
    data = json.loads(_KNOWLEDGE_FILE.read_text(encoding="utf-8"))
    logger.debug(f"Loaded FIP knowledge base with {len(data)} sections")
    return _freeze(data)


@lru_cache(maxsize=1)
def knowledge_text() -> str:
    """Render the knowledge base as indented JSON for the prompt."""
    return json.dumps(_thaw(load_knowledge_base()), indent=2, ensure_ascii=False)


def build_system_prompt() -> str:
    """Combine the assistant instructions with the knowledge base text."""
    return f"{ASSISTANT_INSTRUCTIONS}\n\nFIP KNOWLEDGE BASE:\n{knowledge_text()}"
