"""Utilities for importing questions from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    IMAGE: /uploads/mountain.png   (optional)
    A: First option text
    B: Second option text
    C: Third option text
    D: Fourth option text
    CORRECT: A|B|C|D
    TIMELIMIT: seconds  (optional, defaults to 20)
    ORDER: integer      (optional, defaults to the block's position)

Example:

    Q: What is $2 + 2$?
    A: 3
    B: 4
    C: 5
    D: 22
    CORRECT: B
    TIMELIMIT: 30
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from livequiz.constants.quiz_constants import DEFAULT_TIME_LIMIT_SECONDS, SAMPLE_QUIZ_PATH
from livequiz.core.models import OPTION_LETTERS, QuizDraft

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for imported quiz metadata and questions."""

    source_path: Path
    drafts: list[QuizDraft]


def sample_quiz_path() -> Path:
    return _PACKAGE_ROOT / SAMPLE_QUIZ_PATH


def load_quiz_from_file(file_path: Path) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    drafts = parse_quiz_text(text)
    if not drafts:
        raise QuizImportError("Quiz file did not contain any questions.")
    return ImportedQuiz(source_path=file_path, drafts=drafts)


def parse_quiz_text(text: str) -> list[QuizDraft]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            # Blank line encountered after content - finalize current block
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    return [
        _parse_block(block, position)
        for position, block in enumerate((b for b in blocks if b), start=1)
    ]


def _parse_block(block: str, position: int) -> QuizDraft:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    image_url: str | None = None
    time_limit_seconds = DEFAULT_TIME_LIMIT_SECONDS
    order = position
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("IMAGE:"):
            image_url = line.split(":", 1)[1].strip() or None
            current_section = None
            continue

        if upper.startswith("TIMELIMIT:"):
            time_limit_seconds = _parse_int(line, "TIMELIMIT")
            if time_limit_seconds <= 0:
                raise QuizImportError("TIMELIMIT must be a positive integer.")
            current_section = None
            continue

        if upper.startswith("ORDER:"):
            order = _parse_int(line, "ORDER")
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in OPTION_LETTERS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise QuizImportError("Question text missing (Q: ...)")
    if len(options) != len(OPTION_LETTERS):
        raise QuizImportError("Each question must define exactly four options (A-D).")

    option_list = [options.get(letter, "").strip() for letter in OPTION_LETTERS]
    if any(not opt for opt in option_list):
        raise QuizImportError("Option text cannot be empty.")

    if correct_letter is None:
        raise QuizImportError("Each question needs a CORRECT: line.")
    if correct_letter not in OPTION_LETTERS:
        raise QuizImportError("CORRECT must be one of A, B, C, or D.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text cannot be empty.")

    return QuizDraft(
        question=question_text,
        options=option_list,
        correct_answer=correct_letter,
        order=order,
        time_limit_seconds=time_limit_seconds,
        image_url=image_url,
    )


def _parse_int(line: str, marker: str) -> int:
    raw_value = line.split(":", 1)[1].strip()
    if not raw_value:
        raise QuizImportError(f"{marker} must include an integer value.")
    try:
        return int(raw_value)
    except ValueError as exc:
        raise QuizImportError(f"{marker} must be an integer.") from exc
