"""Unit tests for skill name normalization and static alias groups."""

import pytest

from jdlens.nlp.normalizer import STATIC_ALIAS_GROUPS, static_aliases
from jdlens.nlp.text import normalize_skill_name


@pytest.mark.unit
class TestNormalizeSkillName:

    @pytest.mark.parametrize("raw, expected", [
        ("React.js", "reactjs"),
        ("  Node   JS ", "node js"),
        ("C++", "c"),
        ("Machine-Learning", "machinelearning"),
        ("python_3", "python_3"),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_skill_name(raw) == expected

    @pytest.mark.parametrize("raw", ["React.JS", "  Vue  js", "C#", "ASP.NET Core", "k8s!"])
    def test_idempotent(self, raw):
        once = normalize_skill_name(raw)
        assert normalize_skill_name(once) == once

    def test_none_is_empty(self):
        assert normalize_skill_name(None) == ""


@pytest.mark.unit
class TestStaticAliases:

    def test_group_members_share_a_group(self):
        assert STATIC_ALIAS_GROUPS["react"] == STATIC_ALIAS_GROUPS["reactjs"]
        assert "react js" in STATIC_ALIAS_GROUPS["reactjs"]

    def test_static_aliases_for_known_name(self):
        assert static_aliases("Next.js") == {"next", "nextjs", "next js"}

    def test_static_aliases_for_unknown_name(self):
        assert static_aliases("Django") == {"django"}
