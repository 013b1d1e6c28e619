"""Classify model output for display and render it as a grid.

The two tabular checks are intentionally asymmetric: the markdown-table rule
looks at the second line only, while the headless rule scans the whole text
for a separator fragment.  Mixed replies therefore classify differently
depending on which rule fires first.
"""

import enum

from pydantic import BaseModel

from cv_normalizer.rows.extract import non_blank_lines, split_cells, strip_enclosing_pipes, strip_outer_pipes
from cv_normalizer.rows.patterns import DELIMITER, SEPARATOR_FRAGMENT, SEPARATOR_MARKER


class ViewClassification(str, enum.Enum):
    MARKDOWN_TABLE = "markdown_table"
    HEADLESS_PIPE_ROW = "headless_pipe_row"
    FREE_TEXT = "free_text"


class TableGrid(BaseModel):
    """Display-ready view of a model reply.  Free text carries no grid."""

    classification: ViewClassification
    headers: list[str] = []
    rows: list[list[str]] = []


def is_markdown_table(text: str) -> bool:
    """Header line with a pipe, immediately followed by a ``---`` separator line."""
    lines = non_blank_lines(text)
    return len(lines) >= 2 and DELIMITER in lines[0] and SEPARATOR_MARKER in lines[1]


def is_headless_pipe_row(text: str) -> bool:
    """First line has a pipe and no markdown separator fragment appears anywhere."""
    lines = non_blank_lines(text)
    return len(lines) > 0 and DELIMITER in lines[0] and SEPARATOR_FRAGMENT not in text


def classify(text: str) -> ViewClassification:
    if is_markdown_table(text):
        return ViewClassification.MARKDOWN_TABLE
    if is_headless_pipe_row(text):
        return ViewClassification.HEADLESS_PIPE_ROW
    return ViewClassification.FREE_TEXT


def _parse_table_row(line: str) -> list[str]:
    return split_cells(strip_outer_pipes(line.strip()))


def _parse_headless_row(line: str) -> list[str]:
    return split_cells(strip_enclosing_pipes(line.strip()))


def render(text: str) -> TableGrid:
    """Build the grid shown in the preview pane.

    Markdown tables use the first line as header and skip the second line
    unconditionally, even when it is not a well-formed separator.  Headless
    replies turn every non-blank line into a data row.
    """
    classification = classify(text)
    lines = non_blank_lines(text)

    if classification is ViewClassification.MARKDOWN_TABLE:
        return TableGrid(
            classification=classification,
            headers=_parse_table_row(lines[0]),
            rows=[_parse_table_row(line) for line in lines[2:]],
        )
    if classification is ViewClassification.HEADLESS_PIPE_ROW:
        return TableGrid(classification=classification, rows=[_parse_headless_row(line) for line in lines])
    return TableGrid(classification=classification)
