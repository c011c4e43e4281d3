"""
Core Package.

Contains the rewrite engine:
- Node construction utilities
- Annotation handlers and their registry
- Rewrite driver and import table
- Orchestration engine
"""
