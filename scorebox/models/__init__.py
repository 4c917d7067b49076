from scorebox.models.match import MatchRecord

__all__ = [
    "MatchRecord",
]
