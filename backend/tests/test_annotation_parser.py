import pytest

from app.core.annotation_parser import parse_annotation, normalize_hex_color
from app.core.exceptions import AnnotationParseError


FULL_RESPONSE = (
    "TAGS: beach, sunset, ocean, palm tree, sand\n"
    "DESCRIPTION: A quiet beach at sunset with palm trees swaying in the breeze.\n"
    "COLORS: #FF8C00, #1E90FF, #F5DEB3"
)


def test_parses_all_three_sections():
    annotation = parse_annotation(FULL_RESPONSE)

    assert annotation.tags == ["beach", "sunset", "ocean", "palm tree", "sand"]
    assert annotation.description == "A quiet beach at sunset with palm trees swaying in the breeze."
    assert annotation.colors == ["#FF8C00", "#1E90FF", "#F5DEB3"]


def test_single_line_format_from_prompt():
    text = "TAGS: cat, sofa, indoor DESCRIPTION: A cat sleeping on a sofa. COLORS: #808080, #FFFFFF, #000000"

    annotation = parse_annotation(text)

    assert annotation.tags == ["cat", "sofa", "indoor"]
    assert annotation.description == "A cat sleeping on a sofa."
    assert annotation.colors == ["#808080", "#FFFFFF", "#000000"]


def test_numbered_sections_from_prompt():
    text = (
        "1. TAGS: cat, sofa 2. DESCRIPTION: A cat on a sofa. "
        "3. COLORS: #808080, #FFFFFF, #000000"
    )

    annotation = parse_annotation(text)

    assert annotation.tags == ["cat", "sofa"]
    assert annotation.description == "A cat on a sofa."
    assert annotation.colors == ["#808080", "#FFFFFF", "#000000"]


def test_numbered_sections_on_separate_lines():
    text = "1) TAGS: dog, park\n2) DESCRIPTION: A dog in a park.\n3) COLORS: #00FF00"

    annotation = parse_annotation(text)

    assert annotation.tags == ["dog", "park"]
    assert annotation.description == "A dog in a park."
    assert annotation.colors == ["#00FF00"]


def test_sections_in_any_order_and_markdown_labels():
    text = (
        "**COLORS:** #00ff00, #0000FF\n"
        "**DESCRIPTION:** Green field under a blue sky.\n"
        "**TAGS:** field, sky, grass"
    )

    annotation = parse_annotation(text)

    assert annotation.tags == ["field", "sky", "grass"]
    assert annotation.description == "Green field under a blue sky."
    assert annotation.colors == ["#00FF00", "#0000FF"]


def test_trailing_ellipsis_and_empty_items_are_dropped():
    text = "TAGS: dog, , park... DESCRIPTION: A dog. COLORS: #123456,"

    annotation = parse_annotation(text)

    assert annotation.tags == ["dog", "park"]
    assert annotation.colors == ["#123456"]


def test_empty_sections_are_allowed():
    annotation = parse_annotation("TAGS:\nDESCRIPTION:\nCOLORS:")

    assert annotation.tags == []
    assert annotation.description == ""
    assert annotation.colors == []


def test_strict_rejects_missing_section():
    with pytest.raises(AnnotationParseError) as exc_info:
        parse_annotation("TAGS: a, b\nDESCRIPTION: Something.")

    assert "missing COLORS section" in exc_info.value.problems


def test_strict_rejects_free_text():
    with pytest.raises(AnnotationParseError) as exc_info:
        parse_annotation("I'm sorry, I can't help with that.")

    assert len(exc_info.value.problems) == 3


def test_strict_rejects_invalid_color():
    with pytest.raises(AnnotationParseError) as exc_info:
        parse_annotation("TAGS: a\nDESCRIPTION: b\nCOLORS: #FF0000, crimson")

    assert "invalid color 'crimson'" in exc_info.value.problems


def test_strict_rejects_duplicate_section():
    with pytest.raises(AnnotationParseError):
        parse_annotation("TAGS: a\nTAGS: b\nDESCRIPTION: c\nCOLORS: #FFFFFF")


def test_lenient_defaults_missing_sections():
    annotation = parse_annotation("DESCRIPTION: Only a sentence.", strict=False)

    assert annotation.tags == []
    assert annotation.description == "Only a sentence."
    assert annotation.colors == []


def test_lenient_drops_invalid_colors():
    annotation = parse_annotation("TAGS: a\nDESCRIPTION: b\nCOLORS: red, #abc, #GGGGGG", strict=False)

    assert annotation.colors == ["#AABBCC"]


def test_lenient_handles_none():
    annotation = parse_annotation(None, strict=False)

    assert annotation.to_dict() == {"tags": [], "description": "", "colors": []}


@pytest.mark.parametrize("raw, expected", [
    ("#ff0000", "#FF0000"),
    ("FF0000", "#FF0000"),
    ("#f00", "#FF0000"),
    ("  #00aa11 ", "#00AA11"),
    ("red", None),
    ("#FF00", None),
    ("#FF00000", None),
])
def test_normalize_hex_color(raw, expected):
    assert normalize_hex_color(raw) == expected
