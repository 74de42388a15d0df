"""Batch ORM models."""

from clinic_batch.models.queue import ScrapeJobModel

__all__ = ["ScrapeJobModel"]
