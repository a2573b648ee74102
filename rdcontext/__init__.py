"""rdcontext — library documentation indexed as searchable code snippets."""

__version__ = "0.2.0"
name = "rdcontext"
