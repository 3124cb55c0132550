"""Persistence backends: the catalog cache store and the durable job queue."""

from toolhub_server.storage.cache import JsonFileCacheStore
from toolhub_server.storage.queue import FileJobQueue, Job

__all__ = ["FileJobQueue", "Job", "JsonFileCacheStore"]
