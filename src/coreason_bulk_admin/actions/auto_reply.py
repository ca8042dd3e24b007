# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from datetime import datetime
from typing import Any, Dict, Literal, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field, model_validator

from coreason_bulk_admin.actions.base import RemoteAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError, SessionError
from coreason_bulk_admin.sessions.graph import GraphRequestError, GraphSessionManager
from coreason_bulk_admin.utils.logger import logger


class AutoReplyConfig(BaseModel):
    """
    Mailbox automatic-reply (out of office) settings.
    """

    status: Literal["disabled", "alwaysEnabled", "scheduled"] = Field(default="alwaysEnabled")
    internal_message: str = Field(default="", description="Reply sent to senders inside the organization.")
    external_message: Optional[str] = Field(
        default=None, description="Reply sent to external senders. Defaults to the internal message."
    )
    external_audience: Literal["none", "contactsOnly", "all"] = Field(default="all")
    start: Optional[datetime] = Field(default=None, description="Start of the scheduled window.")
    end: Optional[datetime] = Field(default=None, description="End of the scheduled window.")
    time_zone: str = Field(default="UTC")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_schedule(self) -> "AutoReplyConfig":
        if self.status == "scheduled":
            if self.start is None or self.end is None:
                raise ValueError("A scheduled auto-reply needs both start and end.")
            if self.start >= self.end:
                raise ValueError("Auto-reply start must be before end.")
        if self.status != "disabled" and not self.internal_message.strip():
            raise ValueError("An enabled auto-reply needs an internal message.")
        return self

    def to_graph(self) -> Dict[str, Any]:
        setting: Dict[str, Any] = {"status": self.status}
        if self.status != "disabled":
            external = self.external_message if self.external_message is not None else self.internal_message
            setting.update(
                {
                    "externalAudience": self.external_audience,
                    "internalReplyMessage": self.internal_message,
                    "externalReplyMessage": external,
                }
            )
        if self.status == "scheduled" and self.start and self.end:
            setting["scheduledStartDateTime"] = {
                "dateTime": self.start.strftime("%Y-%m-%dT%H:%M:%S"),
                "timeZone": self.time_zone,
            }
            setting["scheduledEndDateTime"] = {
                "dateTime": self.end.strftime("%Y-%m-%dT%H:%M:%S"),
                "timeZone": self.time_zone,
            }
        return {"automaticRepliesSetting": setting}


class AutoReplyAction(RemoteAction):
    """Sets the automatic-reply configuration of one mailbox through Microsoft Graph."""

    name = "auto-reply"

    def __init__(self, manager: GraphSessionManager, config: AutoReplyConfig) -> None:
        self.manager = manager
        self.config = config

    def describe(self, identity: str) -> str:
        if self.config.status == "scheduled":
            return f"set auto-reply '{self.config.status}' ({self.config.start} -> {self.config.end}) on {identity}"
        return f"set auto-reply '{self.config.status}' on {identity}"

    def apply(self, identity: str) -> ActionResult:
        try:
            session = self.manager.current()
            session.patch(f"users/{quote(identity, safe='@')}/mailboxSettings", self.config.to_graph())
        except (GraphRequestError, SessionError) as e:
            raise ActionError(f"Failed to set auto-reply for {identity}: {e}") from e
        logger.debug(f"Auto-reply '{self.config.status}' set for {identity}")
        return ActionResult.applied(identity, status=self.config.status)
