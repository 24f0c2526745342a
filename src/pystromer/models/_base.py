"""Base model for Stromer API responses.

Every payload model inherits from :class:`StromerBaseModel` which
provides:

* ``extra="ignore"`` so new vendor fields never break parsing.
* A ``model_validator(mode="before")`` that unwraps the vendor
  ``data`` envelope and drops empty-string values so field defaults apply.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pystromer.models._normalize import unwrap_data


class StromerBaseModel(BaseModel):
    """Base for Stromer API payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original API response dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Unwrap the envelope, drop blank values and stash the raw payload."""
        unwrapped = unwrap_data(values)
        if not isinstance(unwrapped, dict):
            return unwrapped

        cleaned: dict[str, Any] = {}
        for key, value in unwrapped.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value

        # Keep the caller's raw= when constructing with kwargs.
        if "raw" not in unwrapped:
            cleaned["raw"] = dict(unwrapped)
        return cleaned
