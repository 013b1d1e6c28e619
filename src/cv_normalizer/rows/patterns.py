"""Delimiter constants shared by the extractor, classifier, and exporter."""

# Field separator in every model reply
DELIMITER = "|"

# Any line containing this is a markdown separator row, never data
SEPARATOR_MARKER = "---"

# Separator fragment that disqualifies a text from the headless-row view
SEPARATOR_FRAGMENT = "---|"

# Clipboard cell separator (pastes into Excel / Sheets as columns)
TSV_DELIMITER = "\t"
