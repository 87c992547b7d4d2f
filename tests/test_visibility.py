"""可见性过滤测试"""

import pytest

from skillhub.skills import NO_FLAGS, VisibilityFlags, parse_skills_flags, skill_visible


class TestSkillVisible:
    def test_no_flags(self):
        assert skill_visible("anything", None)
        assert skill_visible("anything", NO_FLAGS)

    def test_enabled_list(self):
        flags = VisibilityFlags(enabled=frozenset({"a", "b"}))
        assert skill_visible("a", flags)
        assert not skill_visible("c", flags)

    def test_disabled_list(self):
        flags = VisibilityFlags(disabled=frozenset({"a"}))
        assert not skill_visible("a", flags)
        assert skill_visible("b", flags)

    def test_disabled_wins_over_enabled(self):
        flags = VisibilityFlags(enabled=frozenset({"a"}), disabled=frozenset({"a"}))
        assert not skill_visible("a", flags)

    def test_empty_enabled_list_hides_everything(self):
        """空的允许名单与"未设置"不同"""
        assert not skill_visible("a", VisibilityFlags(enabled=frozenset()))

    def test_case_sensitive(self):
        assert not skill_visible("PDF", VisibilityFlags(enabled=frozenset({"pdf"})))


class TestParseSkillsFlags:
    def test_missing_query(self):
        assert parse_skills_flags(None) == NO_FLAGS
        assert parse_skills_flags({}) == NO_FLAGS

    def test_comma_separated(self):
        flags = parse_skills_flags({"enabled_skills": "a, b,,c ", "disabled_skills": "d"})
        assert flags.enabled == frozenset({"a", "b", "c"})
        assert flags.disabled == frozenset({"d"})

    def test_list_values(self):
        flags = parse_skills_flags({"enabled_skills": ["a", "b,c"]})
        assert flags.enabled == frozenset({"a", "b", "c"})
        assert flags.disabled is None

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_blank_means_unset(self, value):
        assert parse_skills_flags({"disabled_skills": value}).disabled is None
