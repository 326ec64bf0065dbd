"""
Image Batch Service - one background image per headline, in rate-limited batches.

Jobs are flattened in (territory, headline) order and split into fixed-size
batches. Batches run one after another with a cool-down between them; jobs
inside a batch run concurrently behind a semaphore.

Each job is an explicit state machine driven by tenacity:

    REQUESTED -> RETRY(n) -> DONE | EXHAUSTED

Attempt 1 uses the headline-specific prompt, later attempts the generic
fallback. Waits before retries double (2s, 4s). An exhausted job becomes an
ImageResult without an image; it never affects its siblings.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from ..core.config import Config
from ..core.exceptions import TerritoryLabError
from ..core.observability import get_logfire
from .gemini_service import GenerationClient
from .image_prompt_builder import build_fallback_prompt, build_image_prompt
from .models import ImageJob, ImageJobState, ImageResult, Territory

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ImageJobExhausted(TerritoryLabError):
    """Every attempt for one image job failed."""

    def __init__(self, job: ImageJob):
        self.territory_index = job.territory_index
        self.headline_index = job.headline_index
        self.attempts = job.attempt
        super().__init__(
            f"Image for territory {job.territory_index + 1}, headline {job.headline_index + 1} "
            f"failed after {job.attempt} attempts: {job.last_error}"
        )


def build_image_jobs(territories: List[Territory], brief: str) -> List[ImageJob]:
    """One job per headline, in territory then headline order."""
    jobs = []
    for territory_index, territory in enumerate(territories):
        fallback = build_fallback_prompt(territory)
        for headline_index, headline in enumerate(territory.headlines):
            jobs.append(ImageJob(
                territory_index=territory_index,
                headline_index=headline_index,
                prompt=build_image_prompt(headline, territory, brief),
                fallback_prompt=fallback,
            ))
    return jobs


def apply_image_results(territories: List[Territory], results: List[ImageResult]) -> int:
    """
    Attach images to headlines by position.

    Results without an image leave the headline untouched.

    Returns:
        Number of headlines that received an image
    """
    applied = 0
    for result in results:
        if result.image_ref is None:
            continue
        try:
            headline = territories[result.territory_index].headlines[result.headline_index]
        except IndexError:
            logger.warning(
                f"Dropping image for missing position ({result.territory_index}, {result.headline_index})"
            )
            continue
        headline.image_ref = result.image_ref
        applied += 1
    return applied


class ImageBatchOrchestrator:
    """
    Bounded-concurrency image generation with per-job retry.

    Features:
    - Strictly sequential batches of batch_size jobs
    - At most batch_size provider calls in flight
    - Fallback prompt and exponential backoff on retry
    - Full failure isolation between jobs
    """

    def __init__(
        self,
        client: GenerationClient,
        batch_size: Optional[int] = None,
        max_attempts: Optional[int] = None,
        cooldown_seconds: Optional[float] = None,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: Provider used for generate_image
            batch_size: Jobs per batch (default: Config.IMAGE_BATCH_SIZE)
            max_attempts: Attempts per job (default: Config.IMAGE_MAX_ATTEMPTS)
            cooldown_seconds: Pause between batches (default: Config.IMAGE_BATCH_COOLDOWN_SECONDS)
            sleep: Awaitable sleep used for backoff and cool-down (tests pass a fake)
        """
        self.client = client
        self.batch_size = batch_size or Config.IMAGE_BATCH_SIZE
        self.max_attempts = max_attempts or Config.IMAGE_MAX_ATTEMPTS
        self.cooldown_seconds = Config.IMAGE_BATCH_COOLDOWN_SECONDS if cooldown_seconds is None else cooldown_seconds
        self.sleep = sleep or asyncio.sleep

        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

        logger.info(
            f"ImageBatchOrchestrator initialized: batch_size={self.batch_size}, "
            f"max_attempts={self.max_attempts}, cooldown={self.cooldown_seconds}s"
        )

    # =========================================================================
    # Single job
    # =========================================================================

    def _before_sleep(self, job: ImageJob) -> Callable[[RetryCallState], None]:
        def log_retry(retry_state: RetryCallState) -> None:
            wait = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                f"Image job ({job.territory_index}, {job.headline_index}) attempt {job.attempt} failed: "
                f"{job.last_error}. Retrying with fallback prompt in {wait:.0f}s..."
            )
        return log_retry

    async def _attempt(self, job: ImageJob) -> ImageResult:
        job.attempt += 1
        if job.attempt > 1:
            job.state = ImageJobState.RETRY
        try:
            image_ref = await self.client.generate_image(job.active_prompt)
        except Exception as e:
            job.last_error = str(e)
            raise
        job.state = ImageJobState.DONE
        return ImageResult(
            territory_index=job.territory_index,
            headline_index=job.headline_index,
            image_ref=image_ref,
            attempts=job.attempt,
        )

    async def run_job(self, job: ImageJob, semaphore: asyncio.Semaphore) -> ImageResult:
        """
        Drive one job to DONE or EXHAUSTED.

        Never raises for provider failures; exhaustion is reported in the
        returned ImageResult.
        """
        async with semaphore:
            retrying = AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=2),
                sleep=self.sleep,
                before_sleep=self._before_sleep(job),
                reraise=True,
            )
            try:
                return await retrying(self._attempt, job)
            except Exception:
                job.state = ImageJobState.EXHAUSTED
                exhausted = ImageJobExhausted(job)
                logger.error(str(exhausted))
                return ImageResult(
                    territory_index=job.territory_index,
                    headline_index=job.headline_index,
                    error=str(exhausted),
                    attempts=job.attempt,
                )

    # =========================================================================
    # Batches
    # =========================================================================

    async def _run_batch(self, batch: List[ImageJob], semaphore: asyncio.Semaphore) -> List[ImageResult]:
        results = await asyncio.gather(
            *(self.run_job(job, semaphore) for job in batch),
            return_exceptions=True,
        )

        processed = []
        for job, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Image job ({job.territory_index}, {job.headline_index}) crashed: {result}"
                )
                processed.append(ImageResult(
                    territory_index=job.territory_index,
                    headline_index=job.headline_index,
                    error=str(result),
                    attempts=job.attempt,
                ))
            else:
                processed.append(result)
        return processed

    async def run(self, territories: List[Territory], brief: str) -> List[ImageResult]:
        """
        Generate one image per headline.

        Cancelling this coroutine lets the current batch finish in the
        background; its results are discarded and no further batch starts.

        Args:
            territories: Territories whose headlines need images
            brief: Brief text (seasonal cues for the prompts)

        Returns:
            One ImageResult per headline, in input order
        """
        jobs = build_image_jobs(territories, brief)
        if not jobs:
            return []

        semaphore = asyncio.Semaphore(self.batch_size)
        batches = [jobs[i:i + self.batch_size] for i in range(0, len(jobs), self.batch_size)]
        logger.info(f"Generating {len(jobs)} images in {len(batches)} batches of up to {self.batch_size}")

        results: List[ImageResult] = []
        for batch_number, batch in enumerate(batches, start=1):
            logger.info(f"Processing image batch {batch_number}/{len(batches)} ({len(batch)} jobs)")
            with get_logfire().span("image_batch", batch=batch_number, jobs=len(batch)):
                batch_results = await asyncio.shield(self._run_batch(batch, semaphore))
            results.extend(batch_results)

            if batch_number < len(batches):
                await self.sleep(self.cooldown_seconds)

        succeeded = sum(1 for r in results if r.image_ref is not None)
        logger.info(f"Image generation complete: {succeeded} succeeded, {len(results) - succeeded} failed")
        return results

    async def attach_images(self, territories: List[Territory], brief: str) -> List[ImageResult]:
        """Run all batches, then attach the images to the headlines."""
        results = await self.run(territories, brief)
        apply_image_results(territories, results)
        return results
