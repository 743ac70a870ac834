"""Government vote alignment sync for the Chamber of Deputies open-data API."""

__version__ = "1.0.0"
