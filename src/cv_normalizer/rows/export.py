"""Clipboard and download conversions for model output.

Clipboard text pastes into Excel / Google Sheets as columns (tab separated).
Markdown tables lose their separator line and outer pipes; headless rows are
split as-is, so a leading or trailing pipe yields an empty edge cell.  That
difference is kept because downstream sheets already expect it.
"""

import enum

from cv_normalizer.rows.classify import ViewClassification
from cv_normalizer.rows.extract import is_separator_line, non_blank_lines, split_cells, strip_outer_pipes
from cv_normalizer.rows.patterns import TSV_DELIMITER

DOWNLOAD_FILENAME = "cv_result.txt"
DOWNLOAD_MEDIA_TYPE = "text/plain"


class ViewMode(str, enum.Enum):
    PREVIEW = "preview"
    RAW = "raw"


def markdown_table_to_tsv(text: str) -> str:
    """Header and data rows as TSV, separator line dropped."""
    data_lines = [line for line in non_blank_lines(text) if not is_separator_line(line)]
    return "\n".join(TSV_DELIMITER.join(split_cells(strip_outer_pipes(line.strip()))) for line in data_lines)


def pipe_data_to_tsv(text: str) -> str:
    """Every non-blank line as TSV, without stripping outer pipes."""
    return "\n".join(TSV_DELIMITER.join(split_cells(line)) for line in non_blank_lines(text))


def is_spreadsheet_ready(classification: ViewClassification) -> bool:
    """True when the preview copy produces TSV rather than the raw reply."""
    return classification in (ViewClassification.MARKDOWN_TABLE, ViewClassification.HEADLESS_PIPE_ROW)


def to_clipboard_text(text: str, classification: ViewClassification, view_mode: ViewMode = ViewMode.PREVIEW) -> str:
    """Return what the copy button puts on the clipboard for the active view."""
    classification = ViewClassification(classification)
    view_mode = ViewMode(view_mode)
    if view_mode is ViewMode.RAW:
        return text
    if classification is ViewClassification.MARKDOWN_TABLE:
        return markdown_table_to_tsv(text)
    if classification is ViewClassification.HEADLESS_PIPE_ROW:
        return pipe_data_to_tsv(text)
    return text


def to_download_bytes(text: str) -> bytes:
    """The raw reply, verbatim, as UTF-8 bytes."""
    return text.encode("utf-8")
