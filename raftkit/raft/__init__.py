"""Raft log, protocol timing constants and persistent storage."""