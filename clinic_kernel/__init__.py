"""
Clinic Kernel

Shared foundation for the clinic report ingestion pipeline:
- Structured JSON logging with job-scoped context
- Typed exception taxonomy with machine-readable codes
- Injectable clock
- SQLAlchemy base, engine, and dialect-aware upserts
- ORM models for the shared relational store
"""

__version__ = "0.1.0"
