"""Bike identity model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pystromer.models._base import StromerBaseModel
from pystromer.models._normalize import safe_str


class BikeIdentity(StromerBaseModel):
    """A bike associated with the user's account.

    Fields are mapped from the bike list endpoint. Immutable once paired.
    """

    id: str = Field(validation_alias=AliasChoices("bikeid", "id", "bike_id"))
    """Vendor bike id, used in every bike resource path."""
    nickname: str | None = Field(default=None, validation_alias=AliasChoices("nickname"))
    name: str | None = Field(default=None, validation_alias=AliasChoices("name"))
    model: str | None = Field(default=None, validation_alias=AliasChoices("biketype", "model"))
    """Bike type (e.g. ``"ST3"``)."""
    color: str | None = Field(default=None, validation_alias=AliasChoices("color"))
    serial: str | None = Field(default=None, validation_alias=AliasChoices("bikenumber", "serial"))
    """Frame number printed on the bike."""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None:
            raise ValueError("bike id must be non-empty")
        return text

    @field_validator("nickname", "name", "model", "color", "serial", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return safe_str(value)

    @property
    def display_name(self) -> str:
        return self.nickname or self.name or f"Stromer {self.model or 'Bike'}"
