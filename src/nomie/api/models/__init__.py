"""
Pydantic models for API request/response schemas.

These are separate from the internal pipeline types to keep the wire
contract independent of the pipeline.
"""
