"""Batched ingestion of transcript documents into the vector store.

A document is an ordered JSON array of chunk descriptors. Valid chunks are
grouped into fixed-size batches; each batch makes one embedding call and one
upsert call. A failing batch marks only its own chunks as failed, so every
input item yields exactly one ``IngestionOutcome`` and the ledger keeps the
input order.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from transcriptqa.core import (
    CompletionSignal,
    EmbeddingProvider,
    IngestionOutcome,
    IngestionResult,
    InvalidInputError,
    TranscriptChunk,
    VectorStoreProvider,
    get_logger,
)
from transcriptqa.core.id_strategy import chunk_id_for
from transcriptqa.core.logging_config import Timer
from transcriptqa.core.models import TranscriptItem, split_topics

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_MAX_CONCURRENT_BATCHES = 4

CANCELLED_MESSAGE = "Ingestion cancelled before this batch was scheduled"


def to_chunk(item: TranscriptItem) -> TranscriptChunk:
    meta = item.metadata
    return TranscriptChunk(
        id=chunk_id_for(item),
        text=item.text,
        start_time=meta.timestamp_start,
        end_time=meta.timestamp_end,
        episode_number=meta.episode_number,
        episode_title=meta.episode_title or "",
        episode_date=meta.date,
        chunk_topic=meta.chunk_topic or "",
        topics=split_topics(meta.topics),
    )


def failed_outcomes(
    batch: list[tuple[int, TranscriptChunk]], filename: str, message: str
) -> list[tuple[int, IngestionOutcome]]:
    return [
        (
            position,
            IngestionOutcome(
                file_name=filename, chunk_id=chunk.id, success=False, error_message=message
            ),
        )
        for position, chunk in batch
    ]


def describe_validation_error(index: int, error: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'item'}: {err['msg']}"
        for err in error.errors()
    )
    return f"Item {index} is malformed: {details}"


class IngestionPipeline:
    """Parses, embeds and upserts transcript documents.

    Args:
        embedder: Embedding provider; called once per batch.
        vector_store: Vector store receiving the embedded chunks.
        batch_size: Number of chunks per embedding/upsert round-trip.
        max_concurrent_batches: Upper bound on batches in flight at once.
        supported_file_types: Accepted file extensions, lower-case with dot.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        vector_store: VectorStoreProvider,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_concurrent_batches: int = DEFAULT_MAX_CONCURRENT_BATCHES,
        supported_file_types: Sequence[str] = (".json",),
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if max_concurrent_batches <= 0:
            raise ValueError("max_concurrent_batches must be positive")
        self._embedder = embedder
        self._vector_store = vector_store
        self.batch_size = batch_size
        self.max_concurrent_batches = max_concurrent_batches
        self.supported_file_types = tuple(ext.lower() for ext in supported_file_types)

    # ------------------------------------------------------------------
    # Validation and parsing
    # ------------------------------------------------------------------

    def validate(self, raw: bytes, filename: str) -> None:
        """Reject empty uploads and unsupported file types.

        Raises:
            InvalidInputError: Before any processing happens.
        """
        if not filename:
            raise InvalidInputError("A file name is required", filename=filename)
        suffix = Path(filename).suffix.lower()
        if suffix not in self.supported_file_types:
            raise InvalidInputError(
                f"Unsupported file type '{suffix or filename}'. "
                f"Supported types: {', '.join(self.supported_file_types)}",
                filename=filename,
            )
        if not raw or not raw.strip():
            raise InvalidInputError(f"File '{filename}' is empty", filename=filename)

    def _parse_document(self, raw: bytes, filename: str) -> list[Any] | str:
        """Return the raw item list, or an error message for a file-level failure."""
        try:
            document = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return f"Failed to parse JSON content: {e}"
        if not isinstance(document, list):
            return (
                "Failed to parse JSON content: expected a top-level array of chunks, "
                f"got {type(document).__name__}"
            )
        if not document:
            raise InvalidInputError(f"File '{filename}' contains no chunks", filename=filename)
        return document

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def _process_batch(
        self,
        batch: list[tuple[int, TranscriptChunk]],
        filename: str,
        batch_logger: Any,
    ) -> list[tuple[int, IngestionOutcome]]:
        chunks = [chunk for _, chunk in batch]

        def failed(message: str) -> list[tuple[int, IngestionOutcome]]:
            return failed_outcomes(batch, filename, message)

        try:
            embeddings = await self._embedder.embed([chunk.text for chunk in chunks])
        except Exception as e:
            batch_logger.error("batch_embed_failed", error=str(e), error_type=type(e).__name__)
            return failed(f"Embedding failed: {e}")

        if len(embeddings) != len(chunks):
            batch_logger.error(
                "batch_embed_mismatch", expected=len(chunks), received=len(embeddings)
            )
            return failed(
                f"Embedding failed: provider returned {len(embeddings)} vectors "
                f"for {len(chunks)} chunks"
            )

        try:
            embedded = [
                chunk.model_copy(update={"embedding": [float(value) for value in vector]})
                for chunk, vector in zip(chunks, embeddings, strict=True)
            ]
        except (TypeError, ValueError) as e:
            batch_logger.error("batch_embed_malformed", error=str(e), error_type=type(e).__name__)
            return failed(f"Embedding failed: malformed vector ({e})")
        # Identical chunks in one document share an id; send each key once
        unique = list({chunk.id: chunk for chunk in embedded}.values())

        try:
            acknowledged = set(await self._vector_store.upsert(unique))
        except Exception as e:
            batch_logger.error("batch_upsert_failed", error=str(e), error_type=type(e).__name__)
            return failed(f"Upsert failed: {e}")

        outcomes: list[tuple[int, IngestionOutcome]] = []
        for position, chunk in batch:
            if chunk.id in acknowledged:
                outcome = IngestionOutcome(file_name=filename, chunk_id=chunk.id, success=True)
                outcomes.append((position, outcome))
            else:
                outcomes.append(
                    (
                        position,
                        IngestionOutcome(
                            file_name=filename,
                            chunk_id=chunk.id,
                            success=False,
                            error_message="Upsert failed: record not acknowledged by vector store",
                        ),
                    )
                )
        return outcomes

    async def _run_batch(
        self,
        batch_index: int,
        batch: list[tuple[int, TranscriptChunk]],
        filename: str,
        semaphore: asyncio.Semaphore,
        cancel_event: asyncio.Event | None,
        operation_logger: Any,
    ) -> list[tuple[int, IngestionOutcome]]:
        batch_logger = operation_logger.bind(batch_index=batch_index, batch_size=len(batch))
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                batch_logger.warning("batch_skipped_cancelled")
                return failed_outcomes(batch, filename, CANCELLED_MESSAGE)
            try:
                with Timer(batch_logger, "ingest_batch") as timer:
                    outcomes = await self._process_batch(batch, filename, batch_logger)
                    timer.complete(succeeded=sum(1 for _, o in outcomes if o.success))
            except Exception as e:
                batch_logger.error("batch_failed", error=str(e), error_type=type(e).__name__)
                return failed_outcomes(batch, filename, f"Batch failed: {e}")
            return outcomes

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        raw: bytes,
        filename: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestionResult:
        """Ingest one transcript document.

        Args:
            raw: The uploaded file content.
            filename: Original file name; its extension selects the parser.
            cancel_event: When set, batches not yet started are recorded as
                failed instead of being processed. Batches already in flight
                finish normally.

        Returns:
            IngestionResult with one outcome per input item, or a single
            file-level failure outcome if the document is not a JSON array.

        Raises:
            InvalidInputError: Empty upload, unsupported type or empty document.
        """
        self.validate(raw, filename)

        operation_logger = logger.bind(operation="ingest", file_name=filename)
        operation_logger.info("ingestion_started", size_bytes=len(raw))

        parsed = self._parse_document(raw, filename)
        if isinstance(parsed, str):
            operation_logger.warning("ingestion_parse_failed", error=parsed)
            return IngestionResult(
                results=[IngestionOutcome(file_name=filename, success=False, error_message=parsed)]
            )

        ledger: list[IngestionOutcome | None] = [None] * len(parsed)
        valid: list[tuple[int, TranscriptChunk]] = []
        for position, raw_item in enumerate(parsed):
            try:
                item = TranscriptItem.model_validate(raw_item)
            except ValidationError as e:
                message = describe_validation_error(position, e)
                operation_logger.warning("chunk_rejected", position=position, error=message)
                ledger[position] = IngestionOutcome(
                    file_name=filename, success=False, error_message=message
                )
                continue
            valid.append((position, to_chunk(item)))

        batches = [
            valid[start : start + self.batch_size]
            for start in range(0, len(valid), self.batch_size)
        ]
        semaphore = asyncio.Semaphore(self.max_concurrent_batches)
        batch_results = await asyncio.gather(
            *(
                self._run_batch(index, batch, filename, semaphore, cancel_event, operation_logger)
                for index, batch in enumerate(batches)
            )
        )
        for outcomes in batch_results:
            for position, outcome in outcomes:
                ledger[position] = outcome

        result = IngestionResult(results=[outcome for outcome in ledger if outcome is not None])
        operation_logger.info(
            "ingestion_completed",
            total_processed=result.total_processed,
            successful_count=result.successful_count,
            batches=len(batches),
        )
        return result

    async def ingest_directory(
        self,
        directory: str | Path,
        *,
        signal: CompletionSignal | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, IngestionResult]:
        """Ingest every supported file in ``directory`` in name order.

        Per-file failures are logged and do not stop the run. ``signal`` is
        resolved exactly once when the run ends, whatever happened.
        """
        path = Path(directory)
        operation_logger = logger.bind(operation="ingest_directory", directory=str(path))
        results: dict[str, IngestionResult] = {}
        try:
            if not path.is_dir():
                operation_logger.error("directory_not_found")
                return results

            files = sorted(
                p
                for p in path.iterdir()
                if p.is_file() and p.suffix.lower() in self.supported_file_types
            )
            if not files:
                operation_logger.info("directory_empty")
                return results

            operation_logger.info("directory_ingestion_started", file_count=len(files))
            for file_path in files:
                if cancel_event is not None and cancel_event.is_set():
                    operation_logger.warning("directory_ingestion_cancelled")
                    break
                try:
                    raw = await asyncio.to_thread(file_path.read_bytes)
                    result = await self.ingest(raw, file_path.name, cancel_event=cancel_event)
                except Exception as e:
                    operation_logger.error(
                        "file_ingestion_failed",
                        file_name=file_path.name,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue
                results[file_path.name] = result
                operation_logger.info(
                    "file_ingested",
                    file_name=file_path.name,
                    total_processed=result.total_processed,
                    successful_count=result.successful_count,
                )
            return results
        finally:
            if signal is not None:
                signal.set()
