"""Matching module for streaming content search."""

from matching.stream_matcher import StreamMatcher, MatchState

__all__ = [
    "StreamMatcher",
    "MatchState",
]
