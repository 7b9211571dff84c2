"""Core (UI-agnostic) practice metrics logic.

This package contains:
- value coercion and date resolution for loosely typed spreadsheet cells
- workbook loading (XLSX -> pandas) behind a time-boxed snapshot cache
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
