"""Tests for fence stripping and lenient validation of model output."""

from app.lesson_engine.postprocess import strip_code_fences, validate_component_source

from conftest import SAMPLE_COMPONENT


class TestStripCodeFences:
    """Markdown fences are removed wherever they appear."""

    def test_no_fences_only_trims(self):
        """Text without fences is only trimmed."""
        assert strip_code_fences("  const a = 1;\n") == "const a = 1;"

    def test_language_tagged_fence(self):
        """A ```tsx fence disappears with its tag."""
        text = "```tsx\nconst a = 1;\n```"
        assert strip_code_fences(text) == "const a = 1;"

    def test_all_known_tags(self):
        """Every common language tag (and none) is stripped."""
        for tag in ("typescript", "tsx", "javascript", "jsx", ""):
            text = f"```{tag}\nexport default LessonComponent;\n```\n"
            assert strip_code_fences(text) == "export default LessonComponent;"

    def test_multiple_fences(self):
        """Several fenced blocks keep their code and lose the fences."""
        text = "Here you go:\n```tsx\nconst a = 1;\n```\nand\n```\nconst b = 2;\n```"
        stripped = strip_code_fences(text)
        assert "```" not in stripped
        assert "const a = 1;" in stripped
        assert "const b = 2;" in stripped

    def test_idempotent(self):
        """Stripping twice gives the same result as once."""
        for text in ("```tsx\nx\n```", "````\ny\n````", "plain", "```", ""):
            once = strip_code_fences(text)
            assert strip_code_fences(once) == once

    def test_code_after_fence_on_same_line_kept(self):
        """Code sharing a line with the fence is not mistaken for a tag."""
        assert strip_code_fences("```const a = 1;```") == "const a = 1;"

    def test_empty_input(self):
        """Empty or missing text yields an empty string."""
        assert strip_code_fences("") == ""
        assert strip_code_fences(None) == ""


class TestValidateComponentSource:
    """Lenient checks: markers warn, implausible content fails."""

    def test_sample_component_passes_without_warnings(self):
        """A well-formed component has no warnings or errors."""
        report = validate_component_source(SAMPLE_COMPONENT)
        assert report.ok
        assert report.warnings == []

    def test_missing_markers_are_only_warnings(self):
        """Missing export, declaration and import only warn."""
        source = (
            "function Lesson() {\n"
            "  return React.createElement('div', null, 'A lesson about fractions and decimals');\n"
            "}\n"
        )
        report = validate_component_source(source)
        assert report.ok
        assert len(report.warnings) == 3

    def test_too_short_is_an_error(self):
        """Content under the minimum length is rejected."""
        report = validate_component_source("export default () => null;", min_length=100)
        assert not report.ok
        assert "too short" in report.errors[0]

    def test_no_function_body_is_an_error(self):
        """Content with neither return nor => is rejected."""
        source = "export default LessonComponent; " + "lorem ipsum " * 20
        report = validate_component_source(source)
        assert not report.ok
        assert any("no return statement" in e for e in report.errors)
