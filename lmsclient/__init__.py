"""lmsclient: caching, resilient data-access layer for an LMS proxy API."""

from lmsclient.application.services.cached_fetch import CachedFetchOrchestrator, FetchedValue
from lmsclient.application.services.lms_data_service import LmsDataService
from lmsclient.core.bootstrap import DataLayer, build_data_layer
from lmsclient.domain import (
    AuthFailure,
    CacheFailure,
    CachePolicies,
    CachePolicy,
    Error,
    Failure,
    GeneralFailure,
    NetworkFailure,
    Result,
    Success,
)
from lmsclient.infrastructure.cache import FileCacheStore
from lmsclient.infrastructure.network import ResilientClient
from lmsclient.shared.enums import CacheStrategy, DataSource

__all__ = [
    "AuthFailure",
    "CacheFailure",
    "CachePolicies",
    "CachePolicy",
    "CacheStrategy",
    "CachedFetchOrchestrator",
    "DataLayer",
    "DataSource",
    "Error",
    "Failure",
    "FetchedValue",
    "FileCacheStore",
    "GeneralFailure",
    "LmsDataService",
    "NetworkFailure",
    "ResilientClient",
    "Result",
    "Success",
    "build_data_layer",
]
