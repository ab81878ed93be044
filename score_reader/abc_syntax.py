"""
ABC Syntax Validator
Structural checks and idempotent repairs for ABC notation returned by the engine.

Only structure is checked here (headers, grouping brackets). Whether the notes
are musically right is the verification pass's job.
"""

import re
from dataclasses import dataclass, field


DEFAULT_REFERENCE_HEADER = "X:1"
DEFAULT_KEY_HEADER = "K:C"
MIN_NOTATION_CHARS = 10

LEADING_FENCE = re.compile(r"^```[\w+-]*")
TRAILING_FENCE = re.compile(r"```$")

HEADER_LINE = re.compile(r"^\s*[A-Za-z]:")
DIRECTIVE_LINE = re.compile(r"^\s*%")
REFERENCE_HEADER = re.compile(r"^X:")
KEY_HEADER = re.compile(r"^\s*K:", re.MULTILINE)
METER_HEADER = re.compile(r"^\s*M:", re.MULTILINE)
ANY_REFERENCE_HEADER = re.compile(r"^\s*X:", re.MULTILINE)

# Note letters, accidentals, rests, bar lines or an inline field / chord
MUSIC_LINE = re.compile(r"^\s*[A-Ga-gzZxX\^_=|\[]")


@dataclass
class RepairResult:
    """Repaired notation plus a human-readable trail of what changed."""
    text: str
    fixes: list[str] = field(default_factory=list)


def is_header_line(line: str) -> bool:
    """Field lines (``K:G``, ``T:Title``) and ``%`` comments / directives."""
    return bool(HEADER_LINE.match(line) or DIRECTIVE_LINE.match(line))


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the engine wraps around its answer."""
    text = text.strip()
    while True:
        stripped = TRAILING_FENCE.sub("", LEADING_FENCE.sub("", text, count=1), count=1).strip()
        if stripped == text:
            return text
        text = stripped


def _find_first_music_line(lines: list[str]) -> int:
    for index, line in enumerate(lines):
        if MUSIC_LINE.match(line) and not is_header_line(line):
            return index
    return -1


def repair_abc(text: str) -> RepairResult:
    """
    Repair structural defects in ABC notation.

    Idempotent: repairing already-repaired text returns it unchanged with an
    empty fix list.

    Args:
        text: Raw or previously repaired ABC notation

    Returns:
        RepairResult with the repaired text and the fixes applied, in order
    """
    fixes = []
    text = strip_code_fences(text or "")

    # Reference number must open the tune
    if not REFERENCE_HEADER.match(text):
        text = f"{DEFAULT_REFERENCE_HEADER}\n{text}" if text else DEFAULT_REFERENCE_HEADER
        fixes.append(f"Added missing reference number header ({DEFAULT_REFERENCE_HEADER})")

    lines = text.split("\n")

    # Key header goes right before the first line of music
    if not any(KEY_HEADER.match(line) for line in lines):
        music_index = _find_first_music_line(lines)
        if music_index >= 0:
            lines.insert(music_index, DEFAULT_KEY_HEADER)
            fixes.append(f"Added missing key header ({DEFAULT_KEY_HEADER}) before the first music line")

    # Chord brackets are balanced per line
    for index, line in enumerate(lines):
        if is_header_line(line):
            continue
        missing = line.count("[") - line.count("]")
        if missing > 0:
            lines[index] = line + "]" * missing
            for _ in range(missing):
                fixes.append(f"Closed unmatched chord bracket on line {index + 1}")

    text = "\n".join(lines)

    # Grace-note braces are balanced across the whole tune
    missing_braces = text.count("{") - text.count("}")
    if missing_braces > 0:
        text += "}" * missing_braces
        fixes.append(f"Closed {missing_braces} unmatched grace-note brace(s) at end of tune")

    return RepairResult(text=text, fixes=fixes)


def notation_body(text: str) -> str:
    """Concatenated music lines with headers and comments removed."""
    return "".join(line.strip() for line in text.split("\n") if not is_header_line(line))


def find_critical_errors(text: str) -> list[str]:
    """
    Defects severe enough to break rendering downstream.

    An empty list means the text is structurally usable.
    """
    errors = []
    if not ANY_REFERENCE_HEADER.search(text):
        errors.append("Missing reference number header (X:)")
    if not METER_HEADER.search(text):
        errors.append("Missing time signature header (M:)")
    if not KEY_HEADER.search(text):
        errors.append("Missing key signature header (K:)")
    if len(notation_body(text)) < MIN_NOTATION_CHARS:
        errors.append(f"Notation content is too short (fewer than {MIN_NOTATION_CHARS} characters of music)")
    return errors
