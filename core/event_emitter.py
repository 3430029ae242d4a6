"""
Event Emitter for Server-Sent Events (SSE)

Lets background podcast audio jobs publish progress updates that are
streamed to the frontend via SSE while the job row is also updated.
"""

import asyncio
import json
from typing import Dict, Any, Optional, Set
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class JobEventEmitter:
    """
    Manages progress events for a background job.
    Uses asyncio queues to pass events from the worker to SSE streams.
    """

    # Registry of jobs with a live event queue
    _active_jobs: Dict[str, asyncio.Queue] = {}

    # Pending cleanup tasks, held so they are not garbage collected before they run
    _cleanup_tasks: Set[asyncio.Task] = set()

    def __init__(self, job_id: str):
        self.job_id = job_id
        self.queue = asyncio.Queue()
        self.start_time = datetime.now()

        JobEventEmitter._active_jobs[job_id] = self.queue

        logger.info(f"📡 [SSE] Created event emitter for job {job_id}")

    async def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None):
        """
        Emit an event to be streamed via SSE

        Args:
            event_type: Type of event (e.g., 'progress', 'stitching')
            data: Additional data to include in the event
        """
        elapsed = (datetime.now() - self.start_time).total_seconds()

        event = {
            'type': event_type,
            'elapsed': int(elapsed),
            'timestamp': datetime.now().isoformat(),
            'data': data or {}
        }

        await self.queue.put(event)
        logger.debug(f"📡 [SSE] Emitted {event_type} for job {self.job_id}")

        # Yield so the SSE generator can consume
        await asyncio.sleep(0)

    async def progress(self, stage: str, percent: int, **details):
        """Emit a 'progress' event for a job stage (generating_audio, stitching)"""
        await self.emit('progress', {'stage': stage, 'progress': percent, **details})

    async def complete(self, data: Optional[Dict[str, Any]] = None):
        """Mark the job complete and close the event stream"""
        await self.emit('complete', data or {'message': 'Processing finished'})
        await self.queue.put(None)
        self._schedule_cleanup()

    async def error(self, error_message: str):
        await self.emit('error', {'message': error_message})
        await self.queue.put(None)
        self._schedule_cleanup()

    def _schedule_cleanup(self):
        task = asyncio.create_task(self._cleanup_after_delay())
        JobEventEmitter._cleanup_tasks.add(task)
        task.add_done_callback(JobEventEmitter._cleanup_tasks.discard)

    async def _cleanup_after_delay(self, delay: float = 5):
        await asyncio.sleep(delay)
        if JobEventEmitter._active_jobs.get(self.job_id) is self.queue:
            del JobEventEmitter._active_jobs[self.job_id]
            logger.info(f"📡 [SSE] Cleaned up job {self.job_id}")

    @classmethod
    def is_active(cls, job_id: str) -> bool:
        return job_id in cls._active_jobs

    @classmethod
    async def stream_events(cls, job_id: str, heartbeat_seconds: float = 15.0):
        """
        Generator that yields SSE-formatted events for a job

        Used by the FastAPI SSE endpoint.
        """
        queue = cls._active_jobs.get(job_id)
        if not queue:
            logger.warning(f"📡 [SSE] No active job found for {job_id}")
            yield {
                "event": "error",
                "data": json.dumps({"message": "Job not found"})
            }
            return

        logger.info(f"📡 [SSE] Started streaming events for job {job_id}")

        yield {
            "event": "ping",
            "data": json.dumps({"message": "SSE connection established"})
        }
        await asyncio.sleep(0)

        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield {
                    "event": "heartbeat",
                    "data": json.dumps({"timestamp": datetime.now().isoformat()})
                }
                await asyncio.sleep(0)
                continue

            if event is None:
                logger.info(f"📡 [SSE] Stream closed for job {job_id}")
                break

            yield {
                "event": event['type'],
                "data": json.dumps({
                    'elapsed': event['elapsed'],
                    'timestamp': event['timestamp'],
                    **event['data'],
                })
            }
            await asyncio.sleep(0)
