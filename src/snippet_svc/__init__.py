"""
SQL Snippet Service - Save, analyze, tag and share SQL snippets

A small query vault providing:
- Heuristic SQL analysis (syntax sanity checks, classification, complexity)
- Versioned query records with tags, favorites and public sharing
- Round-trip export/import as a JSON bundle or a commented .sql dump
"""

__version__ = "0.1.0"
