"""Upload, analyze and persist one project from student media.

The run is a single forward path::

    idle -> uploading -> encoding -> requesting -> extracting -> persisting -> done

with ``failed`` reachable from every non-terminal stage. Each stage reports
progress through ``on_thought``; a failure reports exactly one ``warning``
thought and yields ``PipelineResult(success=False, project_id="")``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum

from sqlalchemy.orm import Session

from projectproof.core.analysis import AnalysisRequester
from projectproof.core.auth import AuthProvider
from projectproof.core.cancellation import CancelToken
from projectproof.core.encoder import encode_media, unwrap_data_url
from projectproof.core.extractor import extract_analysis
from projectproof.core.persistence import ProjectWriter
from projectproof.db.repositories import Repository
from projectproof.errors import EmptyInput, PipelineError
from projectproof.llm.providers import AnalysisProvider
from projectproof.storage.client import StorageClient, new_storage_path
from projectproof.types import MediaFile, PipelineResult, Thought, ThoughtType

logger = logging.getLogger(__name__)

ThoughtCallback = Callable[[Thought], None]


class PipelineStage(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    ENCODING = "encoding"
    REQUESTING = "requesting"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class ProjectPipeline:
    def __init__(
        self,
        *,
        storage: StorageClient,
        requester: AnalysisRequester,
        writer: ProjectWriter,
    ):
        self.storage = storage
        self.requester = requester
        self.writer = writer

    def run(
        self,
        files: Sequence[MediaFile],
        on_thought: ThoughtCallback,
        *,
        auth: AuthProvider,
        cancel_token: CancelToken | None = None,
    ) -> PipelineResult:
        token = cancel_token or CancelToken()
        stage = PipelineStage.IDLE

        def emit(text: str, kind: ThoughtType) -> None:
            on_thought(Thought(text=text, type=kind))

        try:
            if not files:
                raise EmptyInput("no files provided")

            media = files[0]
            if len(files) > 1:
                logger.info("Processing first of %s files; ignoring the rest", len(files))

            stage = self._enter(PipelineStage.UPLOADING)
            token.raise_if_cancelled("upload")
            emit("Uploading media to secure storage...", "process")
            media = unwrap_data_url(media)
            storage_path = new_storage_path(media)
            self.storage.put(storage_path, media)
            public_url = self.storage.get_public_address(storage_path)
            emit("Media uploaded successfully.", "success")

            stage = self._enter(PipelineStage.ENCODING)
            emit("Initializing multimodal perception modules...", "info")
            encoded = encode_media(media)

            stage = self._enter(PipelineStage.REQUESTING)
            token.raise_if_cancelled("the model call")
            emit("Generating SIWES logbook entry...", "process")
            raw_answer = self.requester.request(
                media=encoded,
                media_type=media.content_type,
                on_thought=on_thought,
                cancel_token=token,
            )
            emit("Technical rationale synthesized.", "success")

            stage = self._enter(PipelineStage.EXTRACTING)
            emit("Drafting professional case study...", "process")
            analysis = extract_analysis(raw_answer)

            stage = self._enter(PipelineStage.PERSISTING)
            token.raise_if_cancelled("the project insert")
            project_id = self.writer.write(
                analysis=analysis,
                thumbnail_url=public_url,
                is_video=media.is_video,
                auth=auth,
            )
        except PipelineError as exc:
            self._enter(PipelineStage.FAILED)
            logger.warning("Pipeline failed stage=%s kind=%s: %s", stage.value, exc.kind, exc)
            emit(f"Analysis failed: {exc}", "warning")
            return PipelineResult(success=False, error=exc.kind, failed_stage=stage.value)
        except Exception:
            self._enter(PipelineStage.FAILED)
            logger.exception("Pipeline crashed stage=%s", stage.value)
            emit("Analysis failed: unexpected error.", "warning")
            return PipelineResult(success=False, error="InternalError", failed_stage=stage.value)

        self._enter(PipelineStage.DONE)
        emit("Proof generation complete.", "success")
        return PipelineResult(success=True, project_id=project_id)

    @staticmethod
    def _enter(stage: PipelineStage) -> PipelineStage:
        logger.info("Pipeline stage=%s", stage.value)
        return stage


def build_pipeline(session: Session, *, storage: StorageClient, provider: AnalysisProvider) -> ProjectPipeline:
    return ProjectPipeline(
        storage=storage,
        requester=AnalysisRequester(provider),
        writer=ProjectWriter(Repository(session)),
    )
