"""Batch services: the scrape queue, daily enqueue, and the per-job boundary."""

from clinic_batch.services.enqueue import EnqueueResult, enqueue_day
from clinic_batch.services.job_runner import ScrapeJobRunner
from clinic_batch.services.queue_store import QueueStore

__all__ = ["EnqueueResult", "QueueStore", "ScrapeJobRunner", "enqueue_day"]
