"""Exception hierarchy for the pipeline-builder framework."""


class PipelineBuilderError(Exception):
    """Base exception for all pipeline-builder errors."""


class ValidationError(PipelineBuilderError):
    """Raised when a store update names fields a node does not have."""


class CatalogError(PipelineBuilderError):
    """Raised when a node catalog file cannot be read or parsed."""


class PayloadError(PipelineBuilderError):
    """Raised when a drag payload is missing or malformed."""


class DocumentError(PipelineBuilderError):
    """Raised when a pipeline document cannot be read or parsed."""
