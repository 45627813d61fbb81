"""
Error taxonomy for TKAlign.

Every failure is fatal for the run that raised it: nothing is retried and no
partial alignment is returned, except through AlignmentMemoryError which
carries the best alignment reached before memory ran out.
"""

from typing import Any, Optional


class TKAlignError(Exception):
    """Base class of all TKAlign errors."""


class InputError(TKAlignError, ValueError):
    """Malformed input: empty sequence set, bad ids, invalid external guide tree."""


class ConfigurationError(TKAlignError, ValueError):
    """Unrecognized alphabet, distance transform, clustering method or profile shape."""


class AlignmentMemoryError(TKAlignError, MemoryError):
    """Memory was exhausted mid-run.

    ``best_alignment`` holds the best MSA computed so far (or None) so the
    caller can persist it before terminating.
    """

    def __init__(self, message: str, best_alignment: Optional[Any] = None):
        super().__init__(message)
        self.best_alignment = best_alignment
