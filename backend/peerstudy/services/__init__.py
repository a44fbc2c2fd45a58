"""Domain services. Each takes a unit of work and raises peerstudy.exceptions errors."""

from peerstudy.services.matching import recommend_peers
from peerstudy.services.scoring import DEFAULT_WEIGHTS, ScoringWeights, compatibility_score
from peerstudy.services.storage import FileStorage, UploadKind, get_storage

__all__ = [
    "recommend_peers",
    "DEFAULT_WEIGHTS",
    "ScoringWeights",
    "compatibility_score",
    "FileStorage",
    "UploadKind",
    "get_storage",
]
