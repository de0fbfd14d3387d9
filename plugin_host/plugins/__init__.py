"""Built-in plugins. Every module in this directory not starting with '_' is loaded at startup."""
