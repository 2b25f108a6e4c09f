"""
Draw Scheduler
Polls the delayed queue and runs due giveaway draws

Outcome handling per delivery:
    handler returns          -> ack
    TaskAbandoned            -> ack (nothing left to retry)
    TaskDeferred             -> postpone, the attempt is not counted
    InvalidTaskPayload       -> bury
    any other exception      -> retry with backoff, bury after max attempts
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from .queue import DelayedTaskQueue, InvalidTaskPayload, QueuedTask, TaskAbandoned, TaskDeferred

logger = logging.getLogger(__name__)


class DrawScheduler:
    """Background consumer for a DelayedTaskQueue"""

    def __init__(self, queue: DelayedTaskQueue, handler: Callable[[str], object],
                 poll_interval: float = 5, workers: int = 4, batch: int = 10):
        self.queue = queue
        self.handler = handler
        self.poll_interval = poll_interval
        self.workers = workers
        self.batch = batch
        self._stop = threading.Event()

    def process(self, task: QueuedTask) -> str:
        """
        Deliver one leased task.

        Returns:
            'acked', 'abandoned', 'deferred', 'pending' or 'dead'
        """
        try:
            self.handler(task.payload)
        except TaskAbandoned as e:
            logger.warning(f"⚠️ Task {task.task_id} abandoned: {e}")
            self.queue.ack(task)
            return "abandoned"
        except TaskDeferred as e:
            logger.info(f"⏳ Task {task.task_id} deferred for {e.retry_after:.0f}s: {e}")
            self.queue.postpone(task, e.retry_after, e)
            return "deferred"
        except InvalidTaskPayload as e:
            self.queue.bury(task, e)
            return "dead"
        except Exception as e:
            logger.error(f"❌ Task {task.task_id} failed (attempt {task.attempts}): {e}", exc_info=True)
            return self.queue.retry(task, e)

        self.queue.ack(task)
        return "acked"

    def run_pending(self) -> int:
        """Deliver every task that is due right now; returns how many were claimed"""
        tasks = self.queue.claim_due(limit=self.batch)
        if not tasks:
            return 0

        logger.info(f"⏰ Running {len(tasks)} due task(s) from {self.queue.queue}")
        if self.workers <= 1 or len(tasks) == 1:
            for task in tasks:
                self.process(task)
        else:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="draw") as executor:
                list(executor.map(self.process, tasks))
        return len(tasks)

    def run_forever(self):
        logger.info(f"🚀 Draw scheduler started (poll every {self.poll_interval}s)")
        while not self._stop.is_set():
            try:
                claimed = self.run_pending()
            except Exception as e:
                logger.error(f"❌ Scheduler poll failed: {e}", exc_info=True)
                claimed = 0

            # Keep draining while full batches come back
            if claimed < self.batch:
                self._stop.wait(self.poll_interval)
        logger.info("🛑 Draw scheduler stopped")

    def stop(self):
        self._stop.set()
