"""
Batch coordinator.

Processes many images either sequentially or in bounded-concurrency chunks:
the inputs are split into chunks of ``max_concurrent`` runs, each chunk runs
on a thread pool, and the next chunk starts only once every run of the
current one has finished. A failing run is captured in its own result entry
and never affects its siblings. Results keep input order.
"""

import concurrent.futures
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Union

from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.pipeline import GlyphPipeline, ProcessingResult, ProcessingStatus
from ancient_glyph_translator.utils import chunked

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass
class BatchItem:
    """
    One unit of batch work.

    ``existing`` carries an already completed result; such items only get a
    new reconstruction pass.
    """
    source_id: str
    image: Optional[Union[str, ImagePayload]] = None
    existing: Optional[ProcessingResult] = None


@dataclass
class BatchItemResult:
    source_id: str
    status: str
    error: Optional[str] = None
    glyphs_processed: int = 0
    reconstructions: int = 0
    result: Optional[ProcessingResult] = None

    def to_dict(self) -> dict:
        data = {
            "source_id": self.source_id,
            "status": self.status,
            "glyphs_processed": self.glyphs_processed,
            "reconstructions": self.reconstructions,
        }
        if self.error:
            data["error"] = self.error
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data


@dataclass
class BatchReport:
    results: list[BatchItemResult] = field(default_factory=list)
    total_processing_time: float = 0.0

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.status == STATUS_SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == STATUS_FAILED)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "total_processing_time": self.total_processing_time,
            "results": [r.to_dict() for r in self.results],
        }


class BatchProcessor:
    """
    Runs a GlyphPipeline over many inputs.

    Usage:
        processor = BatchProcessor(GlyphPipeline(config))
        report = processor.process(
            [BatchItem("a", "a.jpg"), BatchItem("b", "b.jpg")],
            parallel=True,
            max_concurrent=2,
        )
        print(report.processed, report.failed)
    """

    def __init__(self, pipeline: GlyphPipeline):
        self.pipeline = pipeline

    def process(
        self,
        items: list[BatchItem],
        parallel: bool = False,
        max_concurrent: Optional[int] = None,
        enable_reconstruction: bool = True,
    ) -> BatchReport:
        """Process ``items``; ``max_concurrent`` defaults to the pipeline config."""
        start = time.time()
        report = BatchReport()
        if not items:
            return report

        if parallel:
            if max_concurrent is None:
                max_concurrent = self.pipeline.config.max_concurrent
            max_concurrent = max(1, max_concurrent)
            logger.info(
                "Processing %d items in chunks of %d", len(items), max_concurrent
            )
            for number, chunk in enumerate(chunked(items, max_concurrent), start=1):
                logger.debug("Starting chunk %d (%d items)", number, len(chunk))
                report.results.extend(self._run_chunk(chunk, enable_reconstruction))
        else:
            logger.info("Processing %d items sequentially", len(items))
            for item in items:
                report.results.append(self._run_guarded(item, enable_reconstruction))

        report.total_processing_time = time.time() - start
        logger.info(
            "Batch complete: %d processed, %d failed, %.1fs",
            report.processed, report.failed, report.total_processing_time,
        )
        return report

    def _run_chunk(
        self, chunk: list[BatchItem], enable_reconstruction: bool
    ) -> list[BatchItemResult]:
        """Run one chunk concurrently and wait for all of it."""
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(chunk)) as executor:
            futures = [
                executor.submit(self.run_item, item, enable_reconstruction)
                for item in chunk
            ]
            concurrent.futures.wait(futures)

        results = []
        for item, future in zip(chunk, futures):
            try:
                results.append(future.result())
            except Exception as e:
                logger.error("Item %s failed: %s", item.source_id, e)
                results.append(_failed(item, e))
        return results

    def _run_guarded(self, item: BatchItem, enable_reconstruction: bool) -> BatchItemResult:
        try:
            return self.run_item(item, enable_reconstruction)
        except Exception as e:
            logger.error("Item %s failed: %s", item.source_id, e)
            return _failed(item, e)

    def run_item(self, item: BatchItem, enable_reconstruction: bool) -> BatchItemResult:
        """Process one item; exceptions propagate to the caller."""
        existing = item.existing
        if existing is not None and existing.status == ProcessingStatus.COMPLETED:
            reconstructions = 0
            if enable_reconstruction:
                version = self.pipeline.reconstruct_existing(existing, item.image)
                reconstructions = len(version.results) if version else 0
            return BatchItemResult(
                source_id=item.source_id,
                status=STATUS_SUCCESS,
                glyphs_processed=len(existing.glyphs),
                reconstructions=reconstructions,
                result=existing,
            )

        if item.image is None:
            raise ValueError(f"No image for {item.source_id}")
        result = self.pipeline.process_image(
            item.image,
            source_id=item.source_id,
            enable_reconstruction=enable_reconstruction,
        )
        return BatchItemResult(
            source_id=item.source_id,
            status=STATUS_SUCCESS,
            glyphs_processed=len(result.glyphs),
            reconstructions=len(result.reconstruction.results) if result.reconstruction else 0,
            result=result,
        )


def _failed(item: BatchItem, error: Exception) -> BatchItemResult:
    return BatchItemResult(
        source_id=item.source_id,
        status=STATUS_FAILED,
        error=str(error) or "Processing failed",
    )
