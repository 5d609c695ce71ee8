"""Automatable-check classification.

A rule is automatable when its check content matches any of the heuristics
below. The heuristics are independent; new ones can be appended without
touching the others.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from ..models.benchmark import CheckType


@dataclass(frozen=True)
class Heuristic:
    name: str
    pattern: "re.Pattern[str]"

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))


def _h(name: str, pattern: str) -> Heuristic:
    return Heuristic(name=name, pattern=re.compile(pattern, re.IGNORECASE))


CLASSIFIER_HEURISTICS: tuple[Heuristic, ...] = (
    _h("service-state", r"(?:service|verify).+(?:running|started|enabled)"),
    _h("registry-path", r"registry.+HKLM"),
    _h("feature-installed", r"(?:feature|role).+(?:installed|enabled)"),
    _h("firewall", r"firewall"),
    _h("audit-policy", r"audit.+(?:success|failure)"),
    _h("password-policy", r"password.+policy"),
    _h("get-service", r"get-service"),
    _h("get-itemproperty", r"get-itemproperty"),
    _h("powershell", r"powershell"),
)


def classify(
    check_content: Optional[str],
    heuristics: Iterable[Heuristic] = CLASSIFIER_HEURISTICS,
) -> CheckType:
    """Return AUTO when any heuristic matches the check content, else MANUAL."""
    text = check_content or ""
    if not text.strip():
        return CheckType.MANUAL
    return CheckType.AUTO if any(h.matches(text) for h in heuristics) else CheckType.MANUAL


def matching_heuristics(
    check_content: Optional[str],
    heuristics: Iterable[Heuristic] = CLASSIFIER_HEURISTICS,
) -> list[str]:
    """Names of every heuristic that matches; useful when explaining a classification."""
    text = check_content or ""
    return [h.name for h in heuristics if h.matches(text)]
