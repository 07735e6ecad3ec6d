"""
Omzet: library watcher and workflow runner for media files.

Files found in configured libraries are run through a workflow of shell
tasks inside a scratchpad and committed back over the source only when the
whole workflow has finished.
"""

__version__ = "0.1.0"
