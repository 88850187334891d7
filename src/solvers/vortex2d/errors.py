"""Exceptions and warnings raised by the vortex solver."""


class SheddingError(RuntimeError):
    """Edge circulation solve is singular or ill-conditioned."""


class DivergenceWarning(RuntimeWarning):
    """Element positions or impulse left the expected range."""
