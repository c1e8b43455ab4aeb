"""Domain models for the user directory."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Union


@dataclass(frozen=True)
class User:
    """Represents a row of the ``users`` table."""

    id: int
    name: str
    email: str

    def to_dict(self) -> Dict[str, Union[int, str]]:
        return asdict(self)


__all__ = ["User"]
