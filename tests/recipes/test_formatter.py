from nomie.pipeline.recipes.formatter import LineKind, TextBlockFormatter, render_plain, to_unicode_scripts
from nomie.pipeline.recipes.segmenter import split_answer
from nomie.pipeline.recipes.types import Chunk


class TestTextBlockFormatter:
    def test_line_kinds(self):
        lines = TextBlockFormatter.format("## Soup\n### Broth\n**Steps**\n- salt\n• pepper\nStir well.  ")

        assert [(l.kind, l.text) for l in lines] == [
            (LineKind.HEADING2, "Soup"),
            (LineKind.HEADING3, "Broth"),
            (LineKind.BOLD, "Steps"),
            (LineKind.BULLET, "salt"),
            (LineKind.BULLET, "pepper"),
            (LineKind.PARAGRAPH, "Stir well."),
        ]

    def test_empty_and_lone_hyphen_lines_skipped(self):
        lines = TextBlockFormatter.format("a\r\n\n-\n  \nb")
        assert [l.text for l in lines] == ["a", "b"]

    def test_short_bold_marker_is_paragraph(self):
        (line,) = TextBlockFormatter.format("****")
        assert line.kind is LineKind.PARAGRAPH

    def test_paragraph_keeps_leading_indent(self):
        (line,) = TextBlockFormatter.format("    x²")
        assert line.text == "    x²"


class TestUnicodeScripts:
    def test_single_superscript(self):
        assert to_unicode_scripts("x^2") == "x²"

    def test_braced_subscript(self):
        assert to_unicode_scripts("a_{10}") == "a₁₀"

    def test_mixed_group(self):
        assert to_unicode_scripts("e^{-x}") == "e⁻ˣ"

    def test_unmapped_group_left_alone(self):
        assert to_unicode_scripts("x^{ab}") == "x^{ab}"


class TestRenderPlain:
    def test_inline_math_folded_into_text(self):
        assert render_plain(split_answer("Area is $r^2$ units")) == "Area is r² units"

    def test_display_math_on_own_line(self):
        assert render_plain(split_answer("Sum:\n$$a^2$$\ndone")) == "Sum:\n    a²\ndone"

    def test_headings_and_bullets(self):
        out = render_plain([Chunk.text("## Soup\n- salt\n**Steps**")])
        assert out == "Soup\n====\n• salt\nSTEPS"

    def test_sentinel_renders_as_is(self):
        assert render_plain([Chunk.text("ALLERGY_CONFLICT")]) == "ALLERGY_CONFLICT"
