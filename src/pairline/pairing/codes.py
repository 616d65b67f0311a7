"""Pairing code and session id generation.

Codes are short, human-enterable strings over uppercase letters and
digits that always contain at least one of each.
"""

import logging
import secrets
import string
import time
from typing import Callable, Optional

from pairline.errors import DuplicateCodeError

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


def is_well_formed(code: str, length: int = CODE_LENGTH) -> bool:
    """Check that a code has the issued shape.

    Args:
        code: Candidate code.
        length: Expected length.

    Returns:
        True if the code has the right length, only uses the alphabet and
        mixes letters with digits.
    """
    if len(code) != length or any(c not in CODE_ALPHABET for c in code):
        return False
    return any(c.isalpha() for c in code) and any(c.isdigit() for c in code)


class CodeGenerator:
    """Generate pairing codes that do not collide with live sessions.

    Usage:
        generator = CodeGenerator(length=8)
        code = generator.generate(is_taken=store.is_live)
    """

    MAX_COLLISION_RETRIES = 10

    def __init__(
        self,
        length: int = CODE_LENGTH,
        max_shape_attempts: int = 32,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize generator.

        Args:
            length: Number of characters per code (at least 2).
            max_shape_attempts: Resamples allowed before forcing a letter
                and a digit into the sample.
            clock: Time source for the collision fallback suffix.
        """
        if length < 2:
            raise ValueError("Code length must be at least 2")
        self.length = length
        self.max_shape_attempts = max_shape_attempts
        self._clock = clock

    def _sample(self) -> str:
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(self.length))

    def sample(self) -> str:
        """Draw one well-formed code, ignoring collisions."""
        for _ in range(self.max_shape_attempts):
            code = self._sample()
            if is_well_formed(code, self.length):
                return code

        # Out of attempts: force one letter and one digit into distinct slots
        chars = list(self._sample())
        letter_pos, digit_pos = secrets.SystemRandom().sample(range(self.length), 2)
        chars[letter_pos] = secrets.choice(string.ascii_uppercase)
        chars[digit_pos] = secrets.choice(string.digits)
        return "".join(chars)

    def _sample_unique(self, is_taken: Callable[[str], bool]) -> str:
        for _ in range(self.MAX_COLLISION_RETRIES):
            code = self.sample()
            if not is_taken(code):
                return code
        raise DuplicateCodeError(
            f"No free code after {self.MAX_COLLISION_RETRIES} attempts"
        )

    def generate(self, is_taken: Optional[Callable[[str], bool]] = None) -> str:
        """Generate a code not rejected by ``is_taken``.

        Args:
            is_taken: Predicate returning True for codes already in use.

        Returns:
            A new code. After repeated collisions the code carries a
            ``_NNNN`` suffix from the clock, extended by a counter until free.
        """
        if is_taken is None:
            return self.sample()

        try:
            return self._sample_unique(is_taken)
        except DuplicateCodeError as e:
            logger.warning(f"{e}, falling back to suffixed code")

        suffix = str(int(self._clock() * 1000))[-4:]
        base = f"{self.sample()}_{suffix}"
        code = base
        counter = 0
        while is_taken(code):
            counter += 1
            code = f"{base}{counter}"
        return code


def generate_session_id(
    prefix: str = "PAIRLINE", clock: Callable[[], float] = time.time
) -> str:
    """Generate a session id correlating a code with link credentials.

    Format: ``<prefix>_<epoch ms>_<6 uppercase hex chars>``.
    """
    millis = int(clock() * 1000)
    return f"{prefix}_{millis}_{secrets.token_hex(3).upper()}"
