"""
External system integrations (TMDb, OMDb, Streaming Availability).

Each upstream client composes the shared cache, its own rate limiter and a
`requests` call, and normalizes the upstream payload into `streamscout.models`.
"""
