"""
Error categories for leaderboard fetches.

Transport failures may be answered from a stale cache entry; authorization
failures never are.
"""
from typing import Optional


class LeaderboardError(Exception):
    """Base exception for leaderboard-related errors."""
    def __init__(self, message: str, user_message: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.user_message = user_message or message
        self.status = status


class TransportError(LeaderboardError):
    """Network failure or 5xx from the backend."""
    def __init__(self, path: str, details: str, status: Optional[int] = None):
        super().__init__(
            f"Request to {path} failed: {details}",
            "Could not reach the leaderboard service. Showing cached data if available.",
            status=status,
        )


class AuthorizationError(LeaderboardError):
    """401/403. Not retried, never served from stale cache."""
    def __init__(self, path: str, status: int):
        super().__init__(
            f"Access to {path} denied ({status})",
            "You are not allowed to view this leaderboard.",
            status=status,
        )


class NotFoundError(LeaderboardError):
    def __init__(self, path: str):
        super().__init__(
            f"{path} not found",
            "Leaderboard not found.",
            status=404,
        )


class MalformedDataError(LeaderboardError):
    """Response body could not be decoded."""
    def __init__(self, path: str, details: str):
        super().__init__(
            f"Malformed response from {path}: {details}",
            "The leaderboard service returned unreadable data.",
        )
