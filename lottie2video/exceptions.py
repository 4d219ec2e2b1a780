"""Custom exceptions for the lottie2video rendering pipeline"""

class ConverterError(Exception):
    """
    Base exception for all lottie2video errors.

    Attributes:
        message (str): A description of the error.
        module (str): The module where the error originated.

    Usage:
        raise ConverterError("An error occurred", module="render")
    """
    def __init__(self, message: str, module: str = None):
        self.message = message
        self.module = module or "unknown"
        super().__init__(f"[{self.module}] {self.message}")

class ConfigurationError(ConverterError):
    """Error in configuration/setup"""

class DependencyError(ConverterError):
    """Missing required external tools (ffmpeg, ffprobe, browser)"""

class CommandExecutionError(ConverterError):
    """
    Exception raised when an external command fails.

    The captured stderr is kept on the exception so callers can surface
    the ffmpeg diagnostic.
    """
    def __init__(self, message: str, module: str = None, stderr: str = ""):
        super().__init__(message, module)
        self.stderr = stderr

class MetadataError(ConverterError):
    """Raised when media metadata cannot be retrieved or parsed"""
    def __init__(self, message: str, property_name: str = None):
        self.property_name = property_name
        super().__init__(f"Metadata error: {message}", module="ffprobe")

class HostInitError(ConverterError):
    """The rendering context could not be allocated."""

class LoadError(ConverterError):
    """The animation document could not be parsed or made renderable."""

class CaptureError(ConverterError):
    """A frame could not be captured, usually because the context stopped responding."""

class InvalidStateError(ConverterError):
    """An animation host operation was called in the wrong lifecycle state."""

class EmptyAnimationError(ConverterError):
    """The animation has no playable frames."""

class EncodeError(ConverterError):
    """
    Exception raised when a segment encode fails.

    Attributes:
        diagnostics (str): Tail of the encoder process output.
    """
    def __init__(self, message: str, module: str = None, diagnostics: str = ""):
        super().__init__(message, module)
        self.diagnostics = diagnostics

class MergeError(ConverterError):
    """Error during segment concatenation"""

class SegmentMissingError(MergeError):
    """A segment to be merged is absent or empty"""

class TranscodeError(ConverterError):
    """
    Exception raised when deriving a secondary format fails.

    Attributes:
        output_format (str): The format identifier that failed.
    """
    def __init__(self, message: str, output_format: str = None, module: str = "transcode"):
        super().__init__(message, module)
        self.output_format = output_format

class PipelineTimeoutError(ConverterError):
    """The caller-imposed wall-clock ceiling was exceeded"""

class WorkerCancelledError(ConverterError):
    """A render worker stopped early because a sibling worker failed"""
