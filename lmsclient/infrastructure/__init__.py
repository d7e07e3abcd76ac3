"""Infrastructure: file-backed cache store and resilient proxy HTTP client."""
