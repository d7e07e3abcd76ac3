"""Application layer: cached fetch orchestration and the LMS data service."""
