"""Strict JSON contracts for the model's answers."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from .actions import RecommendedAction


class _Contract(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SpamCheckContract(_Contract):
    is_spam: StrictBool = Field(alias="isSpam")
    spam_indicators: List[str] = Field(alias="spamIndicators")


class ActionContract(_Contract):
    recommended_action: RecommendedAction = Field(alias="recommendedAction")
    key_considerations: List[str] = Field(alias="keyConsiderations")
    inbound_addressed_to: str | None = Field(default=None, alias="inboundMsgAddressedTo")
    urgency_level: str | None = Field(default=None, alias="urgencyLevel")
    inbound_is_requesting: List[str] = Field(default_factory=list, alias="inboundMsgIsRequesting")

    @field_validator("inbound_is_requesting", mode="before")
    @classmethod
    def _as_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class ResponseContract(_Contract):
    message: str = Field(min_length=1)
