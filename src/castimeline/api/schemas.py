"""Request bodies of the authoring API (responses are plain ``{ok, ...}`` JSON)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LoginRequest(_Body):
    password: str = ""

    @field_validator("password", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        return "" if v is None else str(v).strip()


class DeleteRequest(_Body):
    id: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        return "" if v is None else str(v).strip()


class UploadRequest(_Body):
    data_url: str = Field(default="", alias="dataUrl")
    filename: str = "upload"

    @field_validator("data_url", "filename", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        return "" if v is None else str(v)


__all__ = ["DeleteRequest", "LoginRequest", "UploadRequest"]
