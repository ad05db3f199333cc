"""Voting domain services: round state machine, estimates and timers.

This package contains the estimation round logic that HTTP routes and
socket handlers call into, keeping transport concerns separated from the
round mechanics. Every operation takes an explicit ``Caller`` instead of
reading the logged-in user itself.
"""

from .context import Caller
from .errors import (
    VotingError,
    ValidationError,
    Unauthenticated,
    Forbidden,
    NotFound,
    AlreadyVoted,
    RoundStateError,
    ConflictError,
    StorageError,
)

__all__ = [
    'Caller',
    'VotingError',
    'ValidationError',
    'Unauthenticated',
    'Forbidden',
    'NotFound',
    'AlreadyVoted',
    'RoundStateError',
    'ConflictError',
    'StorageError',
]
