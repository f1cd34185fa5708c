"""
notetasks: keyword task extraction for Markdown notes.

Finds TODO/DOING/DONE style task lines in prose, lists, callouts and the
comments of fenced code blocks, and regenerates those lines when a task's
state changes.
"""

__version__ = "0.3.0"
