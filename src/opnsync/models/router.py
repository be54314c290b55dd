"""Router-side records, shaped like the OPNsense API payloads."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, field_validator

_CONTENT_SEPARATOR = re.compile(r"[\n,]")


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


LooseStr = Annotated[str, BeforeValidator(_none_to_empty)]


class DHCPReservation(BaseModel):
    """Static DHCP binding. ``uuid`` stays empty until the router assigns one."""

    model_config = {"frozen": True, "extra": "ignore"}

    uuid: LooseStr = ""
    mac: LooseStr = ""
    ip: LooseStr = ""
    hostname: LooseStr = ""
    description: LooseStr = ""
    disabled: bool = False
    interface: LooseStr = ""

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude={"uuid"})


class FirewallAlias(BaseModel):
    model_config = {"frozen": True, "extra": "ignore", "populate_by_name": True}

    uuid: LooseStr = ""
    name: str
    type: LooseStr = "host"
    content: list[str] = Field(default_factory=list)
    description: LooseStr = ""
    enabled: bool = True
    update_freq: LooseStr = Field(default="", alias="updatefreq")

    @field_validator("content", mode="before")
    @classmethod
    def _split_content(cls, value: Any) -> Any:
        # the router hands content back as one newline separated string
        if value is None:
            return []
        if isinstance(value, str):
            parts = _CONTENT_SEPARATOR.split(value)
            return [part.strip() for part in parts if part.strip()]
        return value

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"uuid"})


class MutationResponse(BaseModel):
    """Answer to add/set/del calls on reservations and aliases."""

    model_config = {"extra": "ignore"}

    status: str = ""
    message: str = ""
    uuid: str = ""
    validations: dict[str, str] = Field(default_factory=dict)

    @field_validator("validations", mode="before")
    @classmethod
    def _stringify_validations(cls, value: Any) -> Any:
        if not value:
            return {}
        return {str(key): str(reason) for key, reason in dict(value).items()}

    @property
    def ok(self) -> bool:
        return self.status.lower() == "ok"


class ConfigurationStatus(BaseModel):
    model_config = {"extra": "ignore"}

    status: str = ""
    message: str = ""
    changed: bool = False

    @property
    def ok(self) -> bool:
        return self.status.lower() == "ok"


class RouterSnapshot(BaseModel):
    """Copy of the router tables taken before a sync mutates them."""

    taken_at: datetime
    reservations: list[DHCPReservation] = Field(default_factory=list)
    aliases: list[FirewallAlias] = Field(default_factory=list)
