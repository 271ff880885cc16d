"""Core (UI-agnostic) dashboard logic.

This package contains:
- configuration and the error taxonomy
- sheet fetching (CSV export -> records)
- row normalization and authentication against the Master sheet
- filter state, filtering / option lists / aggregation / pagination
- chart helpers (Altair -> Vega-Lite spec dict)
- the persisted session store
"""
