"""
Streaming substring matcher.

Decides whether a fixed pattern occurs anywhere in a byte stream using a
Rabin-Karp rolling hash over the last len(pattern) bytes:
- Bytes may arrive in chunks of any size; state carries across calls
- Memory is the sliding window plus the chunk being scanned, independent
  of stream length
- Every hash hit is verified byte-for-byte before a match is reported
"""

from enum import Enum
from itertools import chain
from typing import Iterable, Union

import structlog

from errors import ValidationError

logger = structlog.get_logger()

DEFAULT_BASE = 256
DEFAULT_MODULUS = (1 << 31) - 1  # Mersenne prime, rolled values stay word-sized


class MatchState(Enum):
    """Lifecycle of a StreamMatcher."""
    ACCUMULATING = "accumulating"  # fewer than len(pattern) bytes seen
    ACTIVE = "active"  # window full, comparing on every byte
    MATCHED = "matched"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in (MatchState.MATCHED, MatchState.EXHAUSTED)


class StreamMatcher:
    """
    Rolling-hash substring search over an incrementally fed byte stream.

    Usage:
        matcher = StreamMatcher("ERROR500")
        for chunk in chunks:
            if matcher.feed(chunk) is MatchState.MATCHED:
                break
        state = matcher.finish()
    """

    def __init__(
        self,
        pattern: Union[str, bytes],
        base: int = DEFAULT_BASE,
        modulus: int = DEFAULT_MODULUS
    ):
        """
        Initialize matcher.

        Args:
            pattern: Text (UTF-8 encoded) or bytes to look for
            base: Polynomial base of the rolling hash
            modulus: Modulus of the rolling hash

        Raises:
            ValidationError: If the pattern is empty
        """
        if isinstance(pattern, str):
            pattern = pattern.encode("utf-8")
        if not pattern:
            raise ValidationError("Search pattern must not be empty")

        self.pattern = bytes(pattern)
        self.base = base
        self.modulus = modulus

        self._length = len(self.pattern)
        # Weight of the outgoing (oldest) byte: base^(m-1) mod modulus
        self._high_weight = pow(base, self._length - 1, modulus)
        self._target_hash = self.hash_bytes(self.pattern, base, modulus)

        self._window = b""
        self._window_hash = 0
        self._state = MatchState.ACCUMULATING
        self._bytes_consumed = 0
        self._collisions = 0

    @staticmethod
    def hash_bytes(data: bytes, base: int = DEFAULT_BASE, modulus: int = DEFAULT_MODULUS) -> int:
        """
        Compute the polynomial hash of a byte string.

        Args:
            data: Bytes to hash
            base: Polynomial base
            modulus: Hash modulus

        Returns:
            sum(data[i] * base^(len-1-i)) mod modulus
        """
        value = 0
        for byte in data:
            value = (value * base + byte) % modulus
        return value

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def matched(self) -> bool:
        return self._state is MatchState.MATCHED

    @property
    def bytes_consumed(self) -> int:
        return self._bytes_consumed

    @property
    def collisions(self) -> int:
        """Hash hits that failed exact verification."""
        return self._collisions

    def feed(self, chunk: bytes) -> MatchState:
        """
        Consume the next piece of the stream.

        Args:
            chunk: Next bytes of the stream, any length

        Returns:
            State after consuming the chunk (stops early on a match)
        """
        if self._state.is_terminal or not chunk:
            return self._state

        length = self._length
        base = self.base
        modulus = self.modulus
        window_hash = self._window_hash

        if self._state is MatchState.ACCUMULATING:
            head = chunk[:length - len(self._window)]
            for byte in head:
                window_hash = (window_hash * base + byte) % modulus
            self._window += head
            self._window_hash = window_hash
            self._bytes_consumed += len(head)

            if len(self._window) < length:
                return self._state
            self._state = MatchState.ACTIVE
            if window_hash == self._target_hash and self._verify(self._window):
                self._state = MatchState.MATCHED
                return self._state

            chunk = chunk[len(head):]
            if not chunk:
                return self._state

        high_weight = self._high_weight
        target = self._target_hash

        # Window is full: the oldest window byte leaves as each chunk byte enters
        outgoing_bytes = chain(self._window, chunk)
        for end, (outgoing, incoming) in enumerate(zip(outgoing_bytes, chunk), 1):
            window_hash = ((window_hash - outgoing * high_weight) * base + incoming) % modulus
            if window_hash == target:
                window = self._window_ending_at(chunk, end)
                if self._verify(window):
                    self._window = window
                    self._window_hash = window_hash
                    self._bytes_consumed += end
                    self._state = MatchState.MATCHED
                    return self._state

        self._window = self._window_ending_at(chunk, len(chunk))
        self._window_hash = window_hash
        self._bytes_consumed += len(chunk)
        return self._state

    def _window_ending_at(self, chunk: bytes, end: int) -> bytes:
        """Last len(pattern) stream bytes once chunk[:end] is consumed."""
        if end >= self._length:
            return chunk[end - self._length:end]
        return self._window[end:] + chunk[:end]

    def _verify(self, window: bytes) -> bool:
        """Exact comparison on a hash hit; a mismatch is a collision."""
        if window == self.pattern:
            return True
        self._collisions += 1
        logger.debug(
            "Rolling hash collision rejected",
            offset=self._bytes_consumed,
            pattern_length=self._length
        )
        return False

    def finish(self) -> MatchState:
        """
        Mark the end of the stream.

        Returns:
            MATCHED if the pattern was seen, otherwise EXHAUSTED
        """
        if not self._state.is_terminal:
            self._state = MatchState.EXHAUSTED
        return self._state

    def consume(self, chunks: Iterable[bytes]) -> MatchState:
        """
        Feed an iterable of chunks until a terminal state, then finish.

        Args:
            chunks: Stream pieces in order

        Returns:
            Terminal state (MATCHED or EXHAUSTED)
        """
        for chunk in chunks:
            if self.feed(chunk) is MatchState.MATCHED:
                break
        return self.finish()
