"""
Error taxonomy for the pipeline.

Stage failures are converted into degraded results rather than propagated;
the class names double as the labels recorded in `PipelineResult.degradations`.
"""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class CapabilityError(PipelineError):
    """Represents errors returned by an external model capability."""


class DetectionDegraded(PipelineError):
    """Language detection fell back to the pivot language."""


class TranslationDegraded(PipelineError):
    """Primary translation tier failed or scored too low."""


class TranslationExhausted(PipelineError):
    """Both translation tiers failed; the original text was passed through."""


class GenerationDegraded(PipelineError):
    """Reply generation failed; the safe fallback reply was used."""


class StreamAborted(PipelineError):
    """The event stream could not be delivered to the client."""


class PreprocessingDegraded(PipelineError):
    """Intent extraction failed; the default analysis was used."""
