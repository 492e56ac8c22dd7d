"""{{variable}} substitution for agentic tool system prompts."""

import re
from dataclasses import dataclass, field
from typing import Dict, List


VARIABLE_PATTERN = re.compile(r"\{\{([a-zA-Z_][a-zA-Z0-9_]*)\}\}")

PromptContext = Dict[str, str]


@dataclass
class ProcessedPrompt:
    processed_prompt: str
    replaced_variables: List[str] = field(default_factory=list)
    missing_variables: List[str] = field(default_factory=list)


def _dedupe(names: List[str]) -> List[str]:
    return list(dict.fromkeys(names))


def process_prompt(template: str, context: PromptContext) -> ProcessedPrompt:
    """
    Replace every {{name}} placeholder with its context value.

    Placeholders with no matching key are replaced with an empty string and
    reported in missing_variables. Missing variables are never an error.

    Args:
        template: System prompt template
        context: Flat mapping of variable name to value

    Returns:
        ProcessedPrompt with deduplicated replaced/missing variable names
    """
    replaced = []
    missing = []

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name in context and context[name] is not None:
            replaced.append(name)
            return str(context[name])
        missing.append(name)
        return ""

    processed = VARIABLE_PATTERN.sub(substitute, template)
    return ProcessedPrompt(
        processed_prompt=processed,
        replaced_variables=_dedupe(replaced),
        missing_variables=_dedupe(missing),
    )


def extract_variable_names(template: str) -> List[str]:
    """All placeholder names in order of first appearance."""
    return _dedupe(VARIABLE_PATTERN.findall(template))


def validate_prompt_variables(template: str, context: PromptContext) -> List[str]:
    """Names the template references that the context does not provide."""
    return process_prompt(template, context).missing_variables
