"""Monthly challenge ranking: participant scores, awards and rank resolution."""

from .models import ParticipantScore, RankedParticipant, TiebreakerEntry
from .points import Award, calculate_award, competition_ranks
from .resolver import TIEBREAKER_WINDOW, resolve_ranks

__all__ = [
    "Award",
    "ParticipantScore",
    "RankedParticipant",
    "TIEBREAKER_WINDOW",
    "TiebreakerEntry",
    "calculate_award",
    "competition_ranks",
    "resolve_ranks",
]
