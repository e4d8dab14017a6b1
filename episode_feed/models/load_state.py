"""Load status published to observers of a paging session."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Idle:
    """No load has been attempted yet."""


@dataclass(frozen=True)
class Loading:
    """A fetch is outstanding."""


@dataclass(frozen=True)
class Loaded:
    count: int

    def __post_init__(self):
        if self.count < 0:
            raise ValueError("Loaded count must be non-negative")


@dataclass(frozen=True)
class Error:
    message: str


LoadState = Union[Idle, Loading, Loaded, Error]

IDLE = Idle()
LOADING = Loading()
