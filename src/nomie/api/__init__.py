"""
FastAPI application layer for the Nomie recipe pipeline.

Exposes the single recipe endpoint used by the mobile client plus a health
check for deployments.
"""
