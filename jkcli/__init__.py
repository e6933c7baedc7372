"""Jenkins client library: contexts, jobs, artifacts, nodes, plugins, credentials, queue, filters and fuzzy search."""

__version__ = "0.1.0"