"""upd — upgrade npm package dependencies in place."""

__version__ = "1.0.0"
