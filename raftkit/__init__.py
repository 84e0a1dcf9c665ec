"""Linearizability checking, with a Raft log and persistent storage."""

__version__ = "0.1.0"