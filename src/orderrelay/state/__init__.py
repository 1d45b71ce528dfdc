"""State layer.

This package is the single source of truth for which orders each merchant
currently has, when each merchant last synced, and which live connections
are watching it.
"""
