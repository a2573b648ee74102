"""HTTP transport for rdcontext."""
