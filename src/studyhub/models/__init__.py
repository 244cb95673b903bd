"""Pydantic request/response models for the StudyHub API."""
