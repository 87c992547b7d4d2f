"""SKILL.md 解析测试: frontmatter, 必需字段, 名称规范化."""

import logging

import pytest

from skillhub.skills import MalformedMatter, normalize_skill_name, parse_skill_document
from skillhub.skills.parser import SKILL_NAME_PATTERN


class TestParseSkillDocument:
    def test_basic_document(self):
        doc = parse_skill_document("---\nname: pdf-tools\ndescription: Work with PDFs\n---\n# PDF\n\nUse it.\n")
        assert doc.matter.name == "pdf-tools"
        assert doc.matter.description == "Work with PDFs"
        assert doc.body == "# PDF\n\nUse it.\n"

    def test_body_is_unmodified_after_fence(self):
        """正文保持原样（包括开头的空行和行尾空格）"""
        raw = "---\nname: a\ndescription: d\n---\n\n  indented  \n---\nnot matter\n"
        doc = parse_skill_document(raw)
        assert doc.body == "\n  indented  \n---\nnot matter\n"

    def test_crlf_and_bom(self):
        raw = "\ufeff---\r\nname: crlf\r\ndescription: Windows file\r\n---\r\nbody\r\n"
        doc = parse_skill_document(raw)
        assert doc.matter.name == "crlf"
        assert doc.body == "body\r\n"

    def test_document_without_body(self):
        doc = parse_skill_document("---\nname: empty\ndescription: nothing\n---")
        assert doc.body == ""

    def test_empty_description_allowed(self):
        doc = parse_skill_document('---\nname: quiet\ndescription: ""\n---\n')
        assert doc.matter.description == ""

    def test_non_string_values_coerced(self):
        doc = parse_skill_document("---\nname: 2024\ndescription: 42\n---\n")
        assert doc.matter.name == "2024"
        assert doc.matter.description == "42"

    def test_multiline_description(self):
        raw = "---\nname: multi\ndescription: >\n  first line\n  second line\n---\nbody"
        doc = parse_skill_document(raw)
        assert doc.matter.description.strip() == "first line second line"

    @pytest.mark.parametrize(
        "raw",
        [
            "# No frontmatter at all\n",
            "---\nname: unterminated\ndescription: x\n",
            "---\n- just\n- a list\n---\nbody",
            "---\nname: [unclosed\n---\n",
            "---\ndescription: no name\n---\n",
            "---\nname: ''\ndescription: blank name\n---\n",
            "---\nname: no-description\n---\n",
            "---\nname: null-description\ndescription:\n---\n",
        ],
    )
    def test_malformed_documents_rejected(self, raw):
        with pytest.raises(MalformedMatter):
            parse_skill_document(raw, source="test/SKILL.md")

    def test_error_mentions_source(self):
        with pytest.raises(MalformedMatter) as exc_info:
            parse_skill_document("no matter", source="owner/repo/skills/x/SKILL.md")
        assert "owner/repo/skills/x/SKILL.md" in exc_info.value.message

    def test_invalid_name_normalized_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="skillhub.skills.parser"):
            doc = parse_skill_document("---\nname: Foo Bar\ndescription: d\n---\n")
        assert doc.matter.name == "foo-bar"
        assert any("Foo Bar" in r.getMessage() and "foo-bar" in r.getMessage() for r in caplog.records)

    def test_valid_name_kept_verbatim(self, caplog):
        """合法名称（包括大写）不做任何改动，也不告警"""
        with caplog.at_level(logging.WARNING, logger="skillhub.skills.parser"):
            doc = parse_skill_document("---\nname: My_Skill-2\ndescription: d\n---\n")
        assert doc.matter.name == "My_Skill-2"
        assert not caplog.records

    def test_block_scalar_name_loses_trailing_newline(self):
        """块标量名称自带换行，必须规范化后才能作为目录键"""
        doc = parse_skill_document("---\nname: |\n  foo\ndescription: d\n---\nbody")
        assert doc.matter.name == "foo"
        assert SKILL_NAME_PATTERN.fullmatch(doc.matter.name)


class TestNormalizeSkillName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Foo Bar", "foo-bar"),
            ("  Data   Analysis  ", "data-analysis"),
            ("pdf.tools", "pdf_tools"),
            ("a & b", "a-b"),
            ("C++ Helper", "c_helper"),
            ("--leading and trailing__", "leading-and-trailing"),
            ("中文 skill", "skill"),
        ],
    )
    def test_normalization(self, raw, expected):
        result = normalize_skill_name(raw)
        assert result == expected
        assert SKILL_NAME_PATTERN.fullmatch(result)

    def test_deterministic(self):
        assert normalize_skill_name("Some Odd/Name!") == normalize_skill_name("Some Odd/Name!")

    def test_no_usable_characters(self):
        with pytest.raises(MalformedMatter):
            normalize_skill_name("!!! ???")
