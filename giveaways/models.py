"""
Giveaway data model
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


@dataclass
class Participant:
    id: str
    display_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "display_name": self.display_name}

    @classmethod
    def from_dict(cls, data: dict) -> "Participant":
        return cls(id=str(data["id"]), display_name=data.get("display_name"))


@dataclass
class GiveawayRecord:
    """One giveaway, keyed by the interaction id of the /create command"""
    prize: str
    started_at: datetime
    ends_at: datetime
    winners: int = 1
    participants: List[Participant] = field(default_factory=list)

    def __post_init__(self):
        if self.winners < 1:
            raise ValueError("winners must be at least 1")
        if self.ends_at <= self.started_at:
            raise ValueError("ends_at must be after started_at")

    def is_participant(self, user_id: str) -> bool:
        return any(p.id == user_id for p in self.participants)

    def toggle(self, user_id: str, display_name: Optional[str]) -> bool:
        """
        Enter or leave the giveaway.

        Returns:
            True if the user is now participating, False if they left
        """
        if self.is_participant(user_id):
            self.participants = [p for p in self.participants if p.id != user_id]
            return False
        self.participants.append(Participant(user_id, display_name))
        return True

    def to_json(self) -> str:
        return json.dumps({
            "prize": self.prize,
            "started_at": self.started_at.isoformat(),
            "ends_at": self.ends_at.isoformat(),
            "winners": self.winners,
            "participants": [p.to_dict() for p in self.participants],
        })

    @classmethod
    def from_json(cls, payload: str) -> "GiveawayRecord":
        data = json.loads(payload)
        return cls(
            prize=data["prize"],
            started_at=_parse_dt(data["started_at"]),
            ends_at=_parse_dt(data["ends_at"]),
            winners=int(data["winners"]),
            participants=[Participant.from_dict(p) for p in data.get("participants", [])],
        )


def _parse_dt(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
