"""Reddit Intelligence Daemon.

Fetches recent posts and comment trees from configured subreddits, flattens
them into documents and pushes them into a remote vector document store.
"""

__version__ = "1.0.0"
