"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votesphere/schemas.py`.
Esquemas Pydantic para los payloads de la API de papeletas.

Componentes detectados:
  - Position
  - Candidate
  - Ballot
  - VoteSelection
  - CastVoteRequest
  - parse_ballot

======================== ENGLISH ========================
File: `src/votesphere/schemas.py`.
Pydantic schemas for the ballot API payloads.

Detected components:
  - Position
  - Candidate
  - Ballot
  - VoteSelection
  - CastVoteRequest
  - parse_ballot
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

_WIRE_CONFIG = ConfigDict(
    populate_by_name=True,
    extra="ignore",
    coerce_numbers_to_str=True,
)


class Position(BaseModel):
    """Cargo elegible dentro de la papeleta.

    English: Eligible position on the ballot. ``seats`` is descriptive only;
    the client records a single candidate per position.
    """

    model_config = _WIRE_CONFIG

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    seats: int = Field(default=1, ge=1)
    voting_opens_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("votingOpens", "votingOpensAt", "voting_opens_at"),
    )
    voting_closes_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("votingCloses", "votingClosesAt", "voting_closes_at"),
    )

    @field_validator("name")
    @classmethod
    def strip_text(cls, value: str) -> str:
        """Normaliza texto eliminando espacios.

        English: Normalize text by trimming whitespace.
        """
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Field cannot be empty")
        return cleaned


class Candidate(BaseModel):
    """Candidato aprobado para un cargo.

    English: Candidate offered for a position. Approval filtering is a server
    concern; ``approval_status`` is kept for display only.
    """

    model_config = _WIRE_CONFIG

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    program: Optional[str] = None
    photo_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("photoUrl", "photoRef", "photo_ref"),
    )
    position_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("positionId", "position_id"),
    )
    position_name: Optional[str] = None
    approval_status: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("status", "approvalStatus", "approval_status"),
    )

    @model_validator(mode="before")
    @classmethod
    def lift_nested_position(cls, data: Any) -> Any:
        """Aplana ``position: {id, name}`` en ``position_id``/``position_name``.

        English: Flatten the nested ``position`` reference the API sends.
        """
        if not isinstance(data, dict):
            return data
        nested = data.get("position")
        if isinstance(nested, dict):
            data = dict(data)
            data.setdefault("positionId", nested.get("id"))
            data.setdefault("position_name", nested.get("name"))
        return data


class Ballot(BaseModel):
    """Papeleta: cargos elegibles y candidatos aprobados.

    English: Ballot with eligible positions and approved candidates.
    """

    model_config = _WIRE_CONFIG

    positions: List[Position] = Field(default_factory=list)
    candidates: List[Candidate] = Field(default_factory=list)

    @field_validator("positions", "candidates", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def candidates_for(self, position_id: str) -> List[Candidate]:
        """Candidatos de un cargo en el orden del servidor.

        English: Candidates for one position, in server order.
        """
        return [candidate for candidate in self.candidates if candidate.position_id == position_id]


class VoteSelection(BaseModel):
    """Par ``{positionId, candidateId}`` enviado al emitir el voto."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    position_id: str = Field(serialization_alias="positionId")
    candidate_id: str = Field(serialization_alias="candidateId")


class CastVoteRequest(BaseModel):
    """Cuerpo de ``POST /vote``.

    English: ``POST /vote`` body.
    """

    token: str = Field(min_length=1)
    votes: List[VoteSelection] = Field(min_length=1)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def parse_ballot(data: dict | bytes) -> Ballot:
    """Valida un payload crudo de papeleta.

    Returns the validated ``Ballot``; raises ``ValueError`` on failure.

    English: Validate a raw ballot payload.
    """
    if isinstance(data, bytes):
        try:
            data = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError("Ballot payload is not valid JSON") from exc
    if not isinstance(data, dict):
        raise ValueError("Ballot payload must be a JSON object")
    try:
        return Ballot.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Ballot validation failed: {exc}") from exc
