"""
Escalation Application DTOs
============================

Data Transfer Objects for the escalation API layer and the ticket feed.

These Pydantic models handle serialization/deserialization and validation
for transport records and API responses. Following YAGNI - only what's needed.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Literal, Optional, Union
from datetime import datetime

from escalation.domain import Ticket


SeverityStr = Literal["normal", "warning", "critical"]


# ========== Feed DTOs ==========

class TicketRecordDTO(BaseModel):
    """
    A ticket row as delivered by the ticket API or the realtime stream.

    The creation timestamp is accepted under either of its historical column
    names; it is kept raw so malformed values degrade at evaluation time
    instead of failing the whole reload.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique ticket ID")
    data_criado: Optional[Union[datetime, str]] = Field(None, description="Creation timestamp")
    data_criacao: Optional[Union[datetime, str]] = Field(None, description="Legacy creation timestamp")
    stage_number: int = Field(
        ...,
        validation_alias=AliasChoices("etapa_numero", "stage_number"),
        description="Current stage number"
    )
    stage1_exit_at: Optional[Union[datetime, str]] = Field(
        None,
        validation_alias=AliasChoices("data_saida_etapa1", "stage1_exit_at"),
        description="When the ticket left the awaiting stage"
    )
    name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("nome", "name"),
        description="Customer display name"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Numeric ids are normalized to strings."""
        if isinstance(v, int):
            return str(v)
        return v

    @property
    def created_at(self) -> Optional[Union[datetime, str]]:
        """First non-empty creation timestamp."""
        return self.data_criado or self.data_criacao

    def to_entity(self) -> Ticket:
        return Ticket(
            id=self.id,
            created_at=self.created_at,
            stage_number=self.stage_number,
            stage1_exit_at=self.stage1_exit_at,
            name=self.name,
        )


# ========== Response DTOs ==========

class TicketTimeResponse(BaseModel):
    """Display row for one ticket, recomputed every display tick."""
    ticket_id: str
    name: Optional[str] = None
    stage_number: int
    minutes: int
    status: SeverityStr
    elapsed_label: str
    waiting_label: Optional[str] = None


class BoardResponse(BaseModel):
    """Current display board."""
    tickets: List[TicketTimeResponse]
    awaiting_count: int
    rendered_at: Optional[datetime] = None


class ActiveAlertResponse(BaseModel):
    """Ticket currently escalated to the full-screen alert, if any."""
    active: bool
    ticket_id: Optional[str] = None
    name: Optional[str] = None
    minutes: Optional[int] = None
    scanned_at: Optional[datetime] = None


class DismissResponse(BaseModel):
    """Result of closing a single alert."""
    ticket_id: str
    newly_dismissed: bool


class DismissAllResponse(BaseModel):
    """Result of a bulk dismissal."""
    dismissed_count: int = Field(..., description="Batch size reported to the operator")
    newly_dismissed: int = Field(..., description="Ids that were not dismissed before")
    message: str


class ToastResponse(BaseModel):
    """Advisory message queued for the presentation layer."""
    message: str
    level: str
    created_at: datetime
