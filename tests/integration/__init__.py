"""
Integration tests.

Full request flows through the application stack: read-through caching,
invalidation after writes, warming and fail-open serving. Redis is
replaced by fakeredis, so no external services are needed.
"""
