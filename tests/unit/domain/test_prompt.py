"""
Tests for the briefing prompt builder.

The prompt is line-oriented and the system instruction documents its layout,
so these tests pin the exact text.
"""

import pytest

from briefdesk.domain.domain_type import LangMode
from briefdesk.domain.prompt import BRIEFING_SYSTEM_PROMPT, build_prompt


def test_build_prompt_exact_layout():
    prompt = build_prompt("EN", "https://x.test/doc", "Explain X")

    assert prompt == "LANG_MODE=EN\nURL=https://x.test/doc\n\nMISSION:\nExplain X"


def test_build_prompt_with_empty_url():
    prompt = build_prompt(LangMode.BILINGUAL, "", "Y")

    assert prompt == "LANG_MODE=BILINGUAL\nURL=\n\nMISSION:\nY"


def test_build_prompt_treats_missing_url_as_empty():
    assert build_prompt(LangMode.ZH, None, "Z") == "LANG_MODE=ZH\nURL=\n\nMISSION:\nZ"


def test_build_prompt_trims_mission_whitespace():
    prompt = build_prompt("EN", "", "  \n Explain X \n ")

    assert prompt.endswith("MISSION:\nExplain X")


def test_build_prompt_rejects_unknown_language_mode():
    with pytest.raises(ValueError):
        build_prompt("FR", "", "Explain X")


def test_system_prompt_names_the_research_tools():
    """The model is told which tools exist; keep the names in sync."""
    assert "search" in BRIEFING_SYSTEM_PROMPT
    assert "page_read" in BRIEFING_SYSTEM_PROMPT
    assert "LANG_MODE" in BRIEFING_SYSTEM_PROMPT
