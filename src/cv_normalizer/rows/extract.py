"""Line and cell primitives plus the most-pipes row extractor.

The model is asked for a single ``|``-separated data line, but replies often
carry a header, a markdown separator, or explanatory prose around it.  The
extractor keeps the heuristic deliberately simple: the line with the most
pipes wins.  It is a best-effort pick, not a parser.
"""

from cv_normalizer.rows.patterns import DELIMITER, SEPARATOR_MARKER


def non_blank_lines(text: str) -> list[str]:
    """Split *text* on ``\\n``, dropping whitespace-only lines.  Lines keep their own padding.

    Only ``\\n`` (and a trailing ``\\r``) ends a line; other Unicode line breaks stay inside fields.
    """
    lines = (line.removesuffix("\r") for line in text.strip().split("\n"))
    return [line for line in lines if line.strip()]


def is_separator_line(line: str) -> bool:
    """Return True for markdown separator rows such as ``|---|---|``."""
    return SEPARATOR_MARKER in line


def count_pipes(line: str) -> int:
    return line.count(DELIMITER)


def strip_outer_pipes(line: str) -> str:
    """Drop one leading and one trailing ``|``, each independently if present."""
    if line.startswith(DELIMITER):
        line = line[1:]
    if line.endswith(DELIMITER):
        line = line[:-1]
    return line


def strip_enclosing_pipes(line: str) -> str:
    """Drop the outer ``|`` pair only when the line both starts AND ends with one."""
    if line.startswith(DELIMITER) and line.endswith(DELIMITER):
        return line[1:-1]
    return line


def split_cells(line: str) -> list[str]:
    """Split on ``|`` and trim every cell.  Empty cells are kept."""
    return [cell.strip() for cell in line.split(DELIMITER)]


def select_data_line(text: str) -> str | None:
    """Return the non-separator line with the strictly greatest pipe count, or None.

    Ties go to the top-most line.  Lines without any pipe never qualify.
    """
    best_line = None
    max_pipes = 0
    for line in non_blank_lines(text):
        if is_separator_line(line):
            continue
        pipes = count_pipes(line)
        if pipes > max_pipes:
            max_pipes = pipes
            best_line = line
    return best_line


def extract_row(text: str) -> list[str]:
    """Pick the most data-like line of *text* and split it into fields.

    Returns an empty list when no line contains a pipe.  Field count is not
    validated here; see ``submission.pipeline`` for the minimum-width check.
    """
    line = select_data_line(text)
    if line is None:
        return []
    return split_cells(strip_outer_pipes(line))
