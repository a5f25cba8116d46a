"""Draw exception hierarchy."""


class DrawError(ValueError):
    """Root of all draw domain errors."""


class EmptyParticipantSet(DrawError):
    """A draw was started with nobody to race."""
