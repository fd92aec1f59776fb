"""
Parser for the vision model's annotation text.

Expected shape (order of sections is not significant):

    TAGS: beach, sunset, ocean, palm tree, sand
    DESCRIPTION: A quiet beach at sunset with palm trees.
    COLORS: #FF8C00, #1E90FF, #F5DEB3

Each section body runs from its label to the next label (or end of text).
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from app.core.exceptions import AnnotationParseError

SECTION_LABELS = ("TAGS", "DESCRIPTION", "COLORS")

# Tolerates markdown emphasis around labels, e.g. "**TAGS:**"
_LABEL_RE = re.compile(
    r"(?:\*\*|__)?\b(TAGS|DESCRIPTION|COLORS)\b(?:\*\*|__)?\s*:\s*(?:\*\*|__)?",
)
_HEX_RE = re.compile(r"#?([0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})")
_BODY_STRIP = " \t\r\n*_-"
# Item numbering copied from the prompt, e.g. "sofa 2. DESCRIPTION:"
_TRAILING_NUMBER_RE = re.compile(r"\s*\d+[.)]\s*$")


@dataclass
class Annotation:
    """Structured vision-model output."""
    tags: List[str] = field(default_factory=list)
    description: str = ""
    colors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tags": list(self.tags),
            "description": self.description,
            "colors": list(self.colors),
        }


def normalize_hex_color(value: str) -> Optional[str]:
    """Return '#RRGGBB' (upper-case) or None when value is not a hex color."""
    match = _HEX_RE.fullmatch(value.strip())
    if not match:
        return None
    digits = match.group(1).upper()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


def _split_sections(text: str) -> Tuple[dict, List[str]]:
    sections = {}
    duplicates = []
    matches = list(_LABEL_RE.finditer(text))
    for i, match in enumerate(matches):
        label = match.group(1).upper()
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        body = text[match.end():end].strip(_BODY_STRIP)
        if i + 1 < len(matches):
            body = _TRAILING_NUMBER_RE.sub("", body).strip(_BODY_STRIP)
        if label in sections:
            duplicates.append(label)
            continue
        sections[label] = body
    return sections, duplicates


def _split_list(body: str) -> List[str]:
    items = []
    for raw in body.split(","):
        item = raw.strip().rstrip(".").strip()
        if item:
            items.append(item)
    return items


def parse_annotation(text: str, strict: bool = True) -> Annotation:
    """
    Parse TAGS / DESCRIPTION / COLORS out of model output.

    Args:
        text: Raw model response
        strict: Require all three sections and valid hex colors. When False,
            missing sections become empty values and bad colors are dropped.

    Raises:
        AnnotationParseError: strict mode only
    """
    if text is None:
        text = ""

    sections, duplicates = _split_sections(text)
    problems = []

    if strict:
        for label in SECTION_LABELS:
            if label not in sections:
                problems.append(f"missing {label} section")
        for label in duplicates:
            problems.append(f"duplicate {label} section")

    tags = _split_list(sections.get("TAGS", ""))
    description = sections.get("DESCRIPTION", "")

    colors = []
    for raw in _split_list(sections.get("COLORS", "")):
        color = normalize_hex_color(raw)
        if color is None:
            if strict:
                problems.append(f"invalid color {raw!r}")
            continue
        colors.append(color)

    if problems:
        raise AnnotationParseError(problems)

    return Annotation(tags=tags, description=description, colors=colors)
