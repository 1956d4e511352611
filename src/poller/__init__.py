"""
Poll driver: runs trigger cycles against a fetcher and a cursor store.
Single in-flight cycle per trigger key. Cursor writes are all-or-nothing.
"""

from poller.driver import CycleResult, CycleStatus, PollDriver

__all__ = ["CycleResult", "CycleStatus", "PollDriver"]
