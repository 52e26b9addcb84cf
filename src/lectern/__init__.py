# ABOUTME: Lectern - book metadata aggregation and Readarr matching core.
# ABOUTME: Searches Amazon, Open Library, and Readarr, then merges and matches results.

__version__ = "0.1.0"
