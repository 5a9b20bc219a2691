"""
Inbox Organizer - Rule-driven handling of files arriving in a folder.

This package watches a single folder (e.g. Downloads) and, for each file
that finishes arriving, applies the first matching rule from a YAML rules
file:
- Move it into a folder, resolving name clashes
- Extract it as a zip archive
- Delete it
"""

__version__ = "1.0.0"
