from typing import Optional

class PipelineError(RuntimeError):
    """Base class for every failure a pipeline stage reports."""

    def __init__(self, message: str, stderr: Optional[str] = None):
        super().__init__(message)
        self.stderr = stderr

class EngineNotFoundError(PipelineError):
    pass

class EngineLaunchError(PipelineError):
    """The engine binary exists but the OS refused to start it."""
    pass

class ProbeError(PipelineError):
    pass

class CutError(PipelineError):
    pass

class MergeError(PipelineError):
    """Raised when both the stream-copy and the re-encode concatenation failed.

    The message and ``stderr`` always describe the re-encode attempt.
    """
    pass

class CompressError(PipelineError):
    pass

class ExportError(PipelineError):
    pass

class ConfigError(PipelineError):
    pass
