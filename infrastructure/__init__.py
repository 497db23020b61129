"""Infrastructure layer — operational concerns for the voice creature service.

Modules:
    metrics     Prometheus metrics registry and recording helpers.
"""
