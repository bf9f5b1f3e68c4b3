"""
Rollup Engine Package.

Pure computation layer behind the operations dashboard: commission-adjusted
profit rollups, trend classification, break-even advice and cash-flow
projection over caller-supplied performance records and financial snapshots.

Subpackages:
    - core: Configuration and logging setup
    - models: Pydantic schemas and enums
    - services: Rollup, classification, advisory and projection logic
    - tests: pytest suite

The engine performs no I/O. Data source adapters hand it already-fetched
rows; the presentation layer and notification dispatcher consume its output.
"""

__version__ = "1.0.0"
