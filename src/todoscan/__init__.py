"""
todoscan - keyword comment diagnostics for a workspace.

Scans files for TODO/FIXME style keywords and keeps an incremental index
of findings in step with file saves, creations, renames and deletions.
"""

__version__ = "0.1.0"
