"""Delimited-row extraction, view classification, and export of model output.

Submodules:
  patterns  -- delimiter and separator constants
  extract   -- line/cell primitives and the most-pipes row extractor
  classify  -- markdown-table / headless-row / free-text classification and grid rendering
  export    -- clipboard (TSV) and download conversions
"""
