"""Core shared logic for feature construction and trade memory rules.

This package contains pure business logic with no I/O dependencies
(no database or network access). The storage-backed services in
signal_memory/ feed it rows and persist what it returns.
"""
