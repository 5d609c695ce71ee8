"""Procedure resolution: rule -> verification procedure."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from ..models.benchmark import Rule
from .mappings import CHECK_MAPPINGS, GENERIC_CHECKS, CheckMapping, GenericCheck


def match_mapping(
    text: str,
    mappings: Iterable[CheckMapping] = CHECK_MAPPINGS,
) -> Optional[tuple[CheckMapping, "re.Match[str]"]]:
    """Return the first mapping whose pattern matches ``text``, with its match."""
    for mapping in mappings:
        match = mapping.match(text)
        if match:
            return mapping, match
    return None


def fallback_text(rule: Rule) -> str:
    """Text scanned by the keyword fallbacks: check content plus title, lowercased.

    Description and fix text are deliberately left out so that keywords that
    only appear in discussion or remediation prose do not trigger a check.
    """
    return f"{rule.check_content} {rule.title}".lower()


def generic_check_for(
    rule: Rule,
    checks: Iterable[GenericCheck] = GENERIC_CHECKS,
) -> Optional[GenericCheck]:
    text = fallback_text(rule)
    return next((check for check in checks if check.applies_to(text)), None)


def resolve(
    rule: Rule,
    mappings: Iterable[CheckMapping] = CHECK_MAPPINGS,
    generic_checks: Iterable[GenericCheck] = GENERIC_CHECKS,
) -> Optional[str]:
    """Resolve a rule to a ready-to-run procedure.

    Returns None when no mapping and no keyword fallback applies; the rule
    then stays Not Checked.
    """
    found = match_mapping(rule.check_content, mappings)
    if found:
        mapping, match = found
        return mapping.generator(match, rule)

    generic = generic_check_for(rule, generic_checks)
    if generic:
        return generic.procedure

    return None
