"""Test package for imapnode.

Unit suites live in ``tests/unit`` next to the in-memory IMAP fake; CLI wiring
tests sit at this level.
"""
