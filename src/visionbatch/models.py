"""
Pydantic models of the fetch and poll response bodies.
"""

import typing as t

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Description(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    text: str = Field(default="", validation_alias=AliasChoices("description", "text"))
    source: str | None = Field(default=None, validation_alias=AliasChoices("source", "backend"))

    @model_validator(mode="before")
    @classmethod
    def drop_null_text(cls, data: t.Any):
        if isinstance(data, dict):
            data = {key: value for key, value in data.items() if value is not None}
        return data


class AssetResult(BaseModel):
    """One processed image as reported by the vision service."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(default="", validation_alias=AliasChoices("name", "file_name"))
    descriptions: list[Description] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def drop_null_fields(cls, data: t.Any):
        if isinstance(data, dict):
            data = {key: value for key, value in data.items() if value is not None}
        return data


class ResultSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    assets: list[AssetResult] | None = None
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def stringify_errors(cls, data: t.Any):
        if not isinstance(data, dict):
            return data
        errors = data.get("errors")
        if errors is None:
            return {**data, "errors": []}
        if not isinstance(errors, list):
            errors = [errors]
        return {**data, "errors": [str(error) for error in errors]}


class VisionResponse(BaseModel):
    """
    Body returned by the fetch and poll endpoints.

    Notes
    -----
    Results normally live under ``all``; a bare top-level ``assets`` list is
    folded into the same place.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status: str | None = None
    response_uri: str | None = None
    all: ResultSet | None = None
    error: str | None = None
    message: str | None = None
    credits: int | float | None = None

    @model_validator(mode="before")
    @classmethod
    def unify_nested_fields(cls, data: t.Any):
        if not isinstance(data, dict):
            return data
        if "assets" in data or "errors" in data:
            top_level = {key: data.get(key) for key in ("assets", "errors")}
            data = {key: value for key, value in data.items() if key not in top_level}
            if data.get("all") is None:
                data["all"] = top_level
        for key in ("error", "message"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                data = {**data, key: str(value)}
        return data

    @property
    def assets(self) -> list[AssetResult]:
        if self.all is None or self.all.assets is None:
            return []
        return self.all.assets

    @property
    def errors(self) -> list[str]:
        if self.all is None:
            return []
        return self.all.errors

    @property
    def has_empty_assets(self) -> bool:
        return self.all is not None and self.all.assets is not None and not self.all.assets
