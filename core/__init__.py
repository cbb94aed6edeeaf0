"""Core (UI-agnostic) print-usage dashboard logic.

This package contains:
- data loading (published CSV -> pandas) and record normalization
- filter normalization and the shared year heuristic
- stats / chart projections (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- CSV export and the AI insight collaborator
"""
