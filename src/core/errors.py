from typing import Any, Optional


class PromoEngineError(Exception):
    """
    Base class for every failure surfaced by the generation pipeline.
    The orchestrator attaches the failed VideoArtifact before re-raising.
    """

    def __init__(self, message: str, *, artifact: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.artifact = artifact


class ValidationError(PromoEngineError):
    """Malformed or incomplete product input."""


class RenderError(PromoEngineError):
    """Frame or thumbnail drawing failed."""


class SynthesisError(PromoEngineError):
    """Audio track could not be produced."""


class EncodingError(PromoEngineError):
    """The external encoder exited nonzero, timed out or could not start."""

    def __init__(
        self,
        message: str,
        *,
        stderr: str = "",
        returncode: Optional[int] = None,
        artifact: Optional[Any] = None,
    ):
        super().__init__(message, artifact=artifact)
        self.stderr = stderr
        self.returncode = returncode

    def __str__(self) -> str:
        if self.stderr:
            return f"{self.message}\n{self.stderr.strip()}"
        return self.message


class GenerationCancelled(PromoEngineError):
    """The caller's cancellation token fired."""


class StorageError(PromoEngineError, OSError):
    """Filesystem failure creating directories or reading/writing files."""
