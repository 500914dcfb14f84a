"""
Background batch processor.

Drives one task from pending to completed/failed. URLs are processed in
sequential batches; units inside a batch run concurrently under a semaphore
and each unit's failure is recorded without affecting its siblings. Memory is
sampled between batches to trim records and slow down under pressure.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
import asyncio
import gc

from ..analysis.classifier import ClassifierClient
from ..core.config import Settings, settings as default_settings
from ..core.errors import PipelineError, TaskNotFoundError
from ..core.logging import logger, task_tag
from ..crawler.service import CrawlerService
from ..models.analysis import CompanyInfo, CrawledContent, EmailInfo
from ..models.task import (
    ErrorKind,
    ErrorRecord,
    ErrorStage,
    ResultRecord,
    SiteSummary,
    Task,
    TaskKind,
    TaskStatus,
    utc_now,
)
from .memory import MemoryMonitor, MemoryStatus
from .registry import TaskRegistry


STOPPED_MESSAGE = "Task stopped before completion"

CrawlerFactory = Callable[[Task], CrawlerService]


@dataclass
class _Run:
    cancel_event: asyncio.Event
    future: Optional[asyncio.Task] = None


class BatchProcessor:
    """Runs tasks held in a TaskRegistry."""

    def __init__(
        self,
        registry: TaskRegistry,
        classifier: Optional[ClassifierClient] = None,
        crawler_factory: Optional[CrawlerFactory] = None,
        memory_monitor: Optional[MemoryMonitor] = None,
        config: Optional[Settings] = None
    ):
        self.registry = registry
        self.config = config or registry.config or default_settings
        self.classifier = classifier or ClassifierClient(self.config)
        self.crawler_factory = crawler_factory or self._default_crawler
        self.memory = memory_monitor or MemoryMonitor(self.config)
        self._runs: Dict[str, _Run] = {}

    def _default_crawler(self, task: Task) -> CrawlerService:
        proxies = task.config.proxies if task.config else None
        return CrawlerService(self.config, proxies=proxies)

    def is_running(self, task_id: str) -> bool:
        return task_id in self._runs

    def batch_size_for(self, total_urls: int) -> int:
        """Fewer URLs per batch for larger jobs."""
        size = self.config.BATCH_SIZE
        if total_urls > self.config.HUGE_BATCH_THRESHOLD:
            return max(10, int(size * 0.5))
        if total_urls > self.config.LARGE_BATCH_THRESHOLD:
            return max(15, int(size * 0.75))
        return size

    def concurrency_for(self, total_urls: int) -> int:
        if total_urls > self.config.LARGE_BATCH_THRESHOLD:
            return self.config.CONCURRENT_LIMIT_LARGE
        return self.config.CONCURRENT_LIMIT_NORMAL

    def batch_delay(self, total_urls: int, memory: MemoryStatus) -> float:
        delay = self.config.BATCH_DELAY
        if total_urls > self.config.LARGE_BATCH_THRESHOLD:
            delay *= 2
        if memory.is_high:
            delay *= 3
        elif memory.should_cleanup:
            delay *= 2
        return delay

    def start(self, task_id: str) -> asyncio.Task:
        """Schedule a pending task on the running event loop."""
        run = self._runs.get(task_id)
        if run is not None and run.future is not None:
            return run.future

        run = self._runs.setdefault(task_id, _Run(cancel_event=asyncio.Event()))
        run.future = asyncio.create_task(self.run(task_id), name=f"task-{task_id}")
        return run.future

    def cancel(self, task_id: str) -> Task:
        """Mark the task cancelled and signal its in-flight units to stop."""
        task = self.registry.cancel(task_id)
        run = self._runs.get(task_id)
        if run is not None:
            run.cancel_event.set()
        return task

    async def shutdown(self):
        """Stop every outstanding run and close the classifier client."""
        futures = []
        for run in self._runs.values():
            run.cancel_event.set()
            if run.future is not None:
                run.future.cancel()
                futures.append(run.future)
        if futures:
            await asyncio.gather(*futures, return_exceptions=True)
        await self.classifier.close()

    async def run(self, task_id: str):
        """
        Process a pending task to completion.

        Per-URL failures become error records. An exception escaping the
        batch loop itself marks the task failed with a task_execution record.
        """
        tag = task_tag(task_id)
        try:
            task = self.registry.get(task_id)
        except TaskNotFoundError:
            self._runs.pop(task_id, None)
            raise
        if task.status != TaskStatus.PENDING:
            logger.warning(f"{tag} Not pending ({task.status.value}), skipping run")
            self._runs.pop(task_id, None)
            return

        run = self._runs.setdefault(task_id, _Run(cancel_event=asyncio.Event()))
        cancel_event = run.cancel_event

        task.status = TaskStatus.RUNNING
        task.started_at = utc_now()
        logger.info(
            f"{tag} Starting: kind={task.kind.value} urls={len(task.urls)} "
            f"has_api_key={bool(task.config and task.config.api_key)}"
        )

        crawler: Optional[CrawlerService] = None
        drained = False
        try:
            crawler = self.crawler_factory(task)
            await self._drain(task, crawler, cancel_event)
            drained = True

        except Exception as e:
            logger.error(f"{tag} Task execution failed: {e}", exc_info=True)
            if task.status == TaskStatus.RUNNING:
                task.finish(TaskStatus.FAILED)
                task.add_error(ErrorRecord(
                    stage=ErrorStage.TASK_EXECUTION,
                    error_kind=ErrorKind.UNKNOWN_ERROR,
                    message=str(e) or "Task execution failed",
                ))

        finally:
            if task.status == TaskStatus.RUNNING:
                if drained and not cancel_event.is_set():
                    task.finish(TaskStatus.COMPLETED)
                else:
                    task.finish(TaskStatus.FAILED)
                    task.add_error(ErrorRecord(
                        stage=ErrorStage.TASK_EXECUTION,
                        error_kind=ErrorKind.UNKNOWN_ERROR,
                        message=STOPPED_MESSAGE,
                    ))
            task.currently_processing = []
            if task.completed_at is None:
                task.completed_at = utc_now()
            self.registry.trim_records(task)
            self._runs.pop(task_id, None)
            if crawler is not None:
                await crawler.close()

        elapsed = (task.completed_at - task.started_at).total_seconds()
        logger.info(
            f"{tag} Finished {task.status.value}: total={len(task.urls)} "
            f"succeeded={task.results_produced} failed={task.errors_produced} "
            f"elapsed={elapsed:.1f}s"
        )

    async def _drain(self, task: Task, crawler: CrawlerService, cancel_event: asyncio.Event):
        tag = task_tag(task.id)
        position = 0
        batch_number = 0
        since_memory_check = 0

        # URLs may be appended while the task runs, so the length is re-read.
        while position < len(task.urls):
            if cancel_event.is_set():
                logger.info(f"{tag} Cancellation observed, stopping before batch {batch_number + 1}")
                break

            total = len(task.urls)
            batch_size = self.batch_size_for(total)
            batch = task.urls[position:position + batch_size]
            batch_number += 1
            logger.info(
                f"{tag} Batch {batch_number} (URLs {position + 1}-{position + len(batch)} of {total})"
            )

            semaphore = asyncio.Semaphore(self.concurrency_for(total))
            outcomes = await asyncio.gather(
                *[self._process_url(task, url, crawler, cancel_event, semaphore) for url in batch],
                return_exceptions=True
            )
            for url, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(f"{tag} Unit for {url} raised: {outcome!r}")

            position += len(batch)
            since_memory_check += len(batch)
            self.registry.trim_records(task)

            memory = None
            if since_memory_check >= self.config.MEMORY_CHECK_INTERVAL:
                since_memory_check = 0
                memory = await self._relieve_memory_pressure(task, cancel_event)

            if position < len(task.urls) and not cancel_event.is_set():
                memory = memory or self.memory.sample()
                await self._pause(cancel_event, self.batch_delay(total, memory))

        logger.info(f"{tag} All batches processed")

    async def _relieve_memory_pressure(self, task: Task, cancel_event: asyncio.Event) -> MemoryStatus:
        tag = task_tag(task.id)
        memory = self.memory.sample()
        logger.info(f"{tag} Memory check: rss={memory.rss_mb:.1f}MB")

        if memory.is_critical:
            logger.warning(f"{tag} Critical memory pressure, sweeping and pausing")
            self.registry.sweep()
            gc.collect()
            await self._pause(cancel_event, self.config.CRITICAL_PAUSE)
        elif memory.should_cleanup:
            logger.info(f"{tag} Memory above cleanup threshold, sweeping")
            self.registry.sweep()
            if memory.is_high:
                await self._pause(cancel_event, self.config.HIGH_MEMORY_PAUSE)
        return memory

    @staticmethod
    async def _pause(cancel_event: asyncio.Event, seconds: float):
        """Sleep, waking early if the task is cancelled."""
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _process_url(
        self,
        task: Task,
        url: str,
        crawler: CrawlerService,
        cancel_event: asyncio.Event,
        semaphore: asyncio.Semaphore
    ):
        if not url:
            return

        async with semaphore:
            # Work finished after cancellation is discarded.
            if cancel_event.is_set():
                return

            task.mark_processing(url)
            try:
                content = await crawler.crawl_website(url)
                if cancel_event.is_set():
                    return

                classification = None
                company_info: Optional[CompanyInfo] = None
                emails: List[EmailInfo] = []
                if task.kind == TaskKind.ANALYZE:
                    classification = await self.classifier.classify(task.config, content)
                    if cancel_event.is_set():
                        return
                    if task.config.extract_contacts:
                        company_info, emails = await self._extract_contacts(task, content)
                        if cancel_event.is_set():
                            return

                task.add_result(ResultRecord(
                    url=url,
                    summary=SiteSummary(
                        title=content.title,
                        description=content.description,
                        content=content.content[:self.config.SUMMARY_CONTENT_LIMIT],
                        url=content.url,
                    ),
                    classification=classification,
                    company_info=company_info,
                    emails=emails,
                ))
                task.progress.completed += 1

            except PipelineError as e:
                if cancel_event.is_set():
                    return
                task.add_error(ErrorRecord(
                    url=url,
                    stage=e.stage,
                    error_kind=e.error_kind,
                    message=e.message,
                    retryable=e.retryable,
                ))
                task.progress.completed += 1

            except Exception as e:
                if cancel_event.is_set():
                    return
                logger.error(f"{task_tag(task.id)} Unexpected error for {url}: {e}", exc_info=True)
                task.add_error(ErrorRecord(
                    url=url,
                    stage=ErrorStage.CRAWLING,
                    error_kind=ErrorKind.UNKNOWN_ERROR,
                    message=str(e) or type(e).__name__,
                ))
                task.progress.completed += 1

            finally:
                task.unmark_processing(url)

    async def _extract_contacts(
        self,
        task: Task,
        content: CrawledContent
    ) -> Tuple[Optional[CompanyInfo], List[EmailInfo]]:
        text = "\n".join(filter(None, [content.content, content.footer_content]))
        try:
            company_info = await self.classifier.extract_company_info(task.config, text)
            emails = await self.classifier.extract_emails(task.config, text, content.url)
        except PipelineError as e:
            logger.warning(f"{task_tag(task.id)} Contact extraction failed for {content.url}: {e.message}")
            return None, []
        return company_info, emails
