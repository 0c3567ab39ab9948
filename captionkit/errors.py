"""Input errors raised by the caption library.

All of them indicate bad input rather than a transient failure, so callers
should surface them to the user instead of retrying. They subclass
ValueError so plain `except ValueError` handlers keep working.
"""


class EmptyTranscriptError(ValueError):
    """The transcript contains no words."""


class InvalidDurationError(ValueError):
    """The total media duration is zero or negative."""


class InvalidTimingError(ValueError):
    """Provider word timings are not ordered, overlap, or have end <= start."""


class UnknownStyleTokenError(ValueError):
    """A preset, animation, position or override key is not supported.

    Attributes:
        kind: Which token family failed ("preset", "animation", "position",
              "override").
        token: The rejected value.
    """

    def __init__(self, kind: str, token: str, allowed=None) -> None:
        self.kind = kind
        self.token = token
        msg = "Unknown {} '{}'".format(kind, token)
        if allowed:
            msg += ". Available: {}".format(", ".join(sorted(allowed)))
        super().__init__(msg)
