"""Tests for compliance/classifier.py."""

from __future__ import annotations

import re

import pytest

from stigaudit.compliance.classifier import (
    CLASSIFIER_HEURISTICS,
    Heuristic,
    classify,
    matching_heuristics,
)
from stigaudit.models.benchmark import CheckType


class TestClassify:
    @pytest.mark.parametrize(
        "text",
        [
            "Verify the WsusService service is running.",
            "Open the registry and navigate to HKLM\\SOFTWARE\\Policies.",
            "Ensure the Web-Server role is installed.",
            "The Windows Firewall must be on for all profiles.",
            "Audit Logon must be configured for Success.",
            "The password policy must require 14 characters.",
            "Run Get-Service -Name W3SVC.",
            "Use Get-ItemProperty to read the value.",
            "Run the following PowerShell command.",
        ],
    )
    def test_automatable_wording(self, text):
        assert classify(text) == CheckType.AUTO

    def test_case_insensitive(self):
        assert classify("VERIFY THE SERVICE IS RUNNING") == CheckType.AUTO

    def test_manual_wording(self):
        assert classify("Interview the ISSO and review the site documentation.") == CheckType.MANUAL

    def test_empty_and_none_are_manual(self):
        assert classify("") == CheckType.MANUAL
        assert classify("   ") == CheckType.MANUAL
        assert classify(None) == CheckType.MANUAL

    def test_deterministic(self):
        text = "Verify the firewall service is enabled."
        assert classify(text) == classify(text)

    def test_custom_heuristics(self):
        heuristics = [Heuristic(name="ssh", pattern=re.compile(r"sshd_config"))]
        assert classify("Inspect /etc/ssh/sshd_config", heuristics) == CheckType.AUTO
        assert classify("Verify the service is running", heuristics) == CheckType.MANUAL


class TestMatchingHeuristics:
    def test_reports_every_match(self):
        names = matching_heuristics("Verify the firewall service is enabled.")
        assert "service-state" in names
        assert "firewall" in names

    def test_no_match(self):
        assert matching_heuristics("Interview the ISSO.") == []

    def test_heuristic_names_unique(self):
        names = [h.name for h in CLASSIFIER_HEURISTICS]
        assert len(names) == len(set(names))
