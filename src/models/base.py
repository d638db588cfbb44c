"""Shared Pydantic base models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class LogbookBase(BaseModel):
    """Base model with shared config for all Logbook schemas.

    Fields are snake_case in Python and camelCase on the wire, matching the
    attribute names stored in the Workouts and Exercises tables.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )
