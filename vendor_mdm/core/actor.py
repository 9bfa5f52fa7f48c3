"""The user on whose behalf a request runs."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    id: str
    name: str
