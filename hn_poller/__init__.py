"""
HackerNews "new" story poller.

Polls the newstories listing on a fixed interval, fetches every newly seen
item concurrently, and keeps an in-memory snapshot that a small web UI renders.
"""

__version__ = "0.1.0"
