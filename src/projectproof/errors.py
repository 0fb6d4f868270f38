"""Failure kinds raised by the analysis pipeline stages.

Each stage raises one of these; the pipeline catches them at its boundary and
turns them into a single ``warning`` thought plus a failed result.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every stage failure."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class EmptyInput(PipelineError):
    pass


class EncodingError(PipelineError):
    pass


class StorageError(PipelineError):
    pass


class UpstreamRejected(PipelineError):
    pass


class StreamInterrupted(PipelineError):
    pass


class EmptyResponse(PipelineError):
    pass


class MalformedAnalysis(PipelineError):
    pass


class SchemaMismatch(PipelineError):
    pass


class Unauthenticated(PipelineError):
    pass


class PersistenceError(PipelineError):
    pass


class Cancelled(PipelineError):
    pass
