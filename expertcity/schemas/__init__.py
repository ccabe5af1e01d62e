"""Pydantic request/response schemas. Kept separate from the ORM models."""
