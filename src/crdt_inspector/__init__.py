"""
CRDT Inspector - browse the commit history of a CRDT store.

Loads commits with their change counts in a single query and materializes
each commit's changes only when it is expanded.
"""

__version__ = "0.3.1"
