"""Application services."""

from lmsclient.application.services.cached_fetch import CachedFetchOrchestrator, FetchedValue
from lmsclient.application.services.lms_data_service import LmsDataService

__all__ = ["CachedFetchOrchestrator", "FetchedValue", "LmsDataService"]
