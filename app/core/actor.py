"""Authenticated caller as seen by the report engine."""

from dataclasses import dataclass

from app.models.organization import PositionLevel


@dataclass(frozen=True)
class Actor:
    id: int
    position_level: int

    @property
    def is_staff(self) -> bool:
        return self.position_level <= PositionLevel.STAFF

    @property
    def is_manager(self) -> bool:
        return self.position_level == PositionLevel.MANAGER

    @property
    def is_director(self) -> bool:
        return self.position_level >= PositionLevel.DIRECTOR
