"""bulletin-rag — ingest course-bulletin text into Chroma and search it."""

__version__ = "0.1.0"
