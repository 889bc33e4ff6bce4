"""Prompt assembly and decision parsing for item classification.

The prompt template is user-editable, so nothing here assumes a particular
wording: the item text goes in at the placeholder and the decision is read
from the first line of the completion.
"""

from __future__ import annotations

from feedfilter.config_schema import PROMPT_PLACEHOLDER
from feedfilter.db.store import Decision


def build_prompt(template: str, text: str) -> str:
    """Substitute item text into the template.

    Only the first placeholder is replaced. A template without a
    placeholder gets the text appended on its own line so the model
    still sees the item.
    """
    if PROMPT_PLACEHOLDER in template:
        return template.replace(PROMPT_PLACEHOLDER, text, 1)
    return f"{template}\n{text}"


def parse_decision(completion_text: str, suppress_keyword: str) -> Decision:
    """Map raw completion text to a decision.

    Suppress only when the first non-empty line contains the keyword;
    anything else, including empty or ambiguous output, is keep.

    Args:
        completion_text: Text of the first completion choice
        suppress_keyword: Lower-case word that marks suppression

    Returns:
        "suppress" or "keep"
    """
    normalized = completion_text.strip().lower()
    first_line = next((line.strip() for line in normalized.splitlines() if line.strip()), "")
    if suppress_keyword and suppress_keyword.lower() in first_line:
        return "suppress"
    return "keep"
