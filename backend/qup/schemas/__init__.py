"""Pydantic request/response models for the REST API."""
