"""DocArchive: multi-tenant document storage backend."""

__version__ = "1.0.0"
