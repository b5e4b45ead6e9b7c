"""Background task emission.

The HTTP API only *emits* jobs from here; the Celery app and the task bodies
live in `mentorpay.worker`.
"""
