"""
Delayed Task Queue
Durable at-least-once queue backed by the scheduled_tasks table

A task becomes visible once due_at has passed. Claiming a task leases it by
pushing due_at forward by the visibility timeout; a consumer that dies
without acknowledging simply lets the lease run out and the task is
delivered again. Tasks that keep failing are parked as 'dead'.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Union

from sqlalchemy import text

logger = logging.getLogger(__name__)

DRAW_QUEUE = "giveaway_draws"


class InvalidTaskPayload(ValueError):
    """Queue payload does not decode to a draw task"""


class TaskAbandoned(Exception):
    """Delivery failed for good; the task is consumed instead of retried"""


class TaskDeferred(Exception):
    """Task cannot run yet; deliver it again after retry_after seconds"""

    def __init__(self, message, retry_after: float = 0):
        super().__init__(message)
        self.retry_after = retry_after


@dataclass(frozen=True)
class ScheduledDrawTask:
    interaction_id: str
    channel_id: str
    message_id: str

    def encode(self) -> str:
        return f"{self.interaction_id}:{self.channel_id}:{self.message_id}"

    @classmethod
    def decode(cls, payload) -> "ScheduledDrawTask":
        if not isinstance(payload, str):
            raise InvalidTaskPayload(f"Invalid message: {payload!r}")
        parts = payload.split(":")
        if len(parts) != 3 or not all(parts):
            raise InvalidTaskPayload(f"Invalid message: {payload!r}")
        return cls(*parts)


@dataclass
class QueuedTask:
    task_id: str
    payload: str
    attempts: int
    lease_token: str


def _seconds(delay: Union[timedelta, float, int]) -> float:
    if isinstance(delay, timedelta):
        return delay.total_seconds()
    return float(delay)


class DelayedTaskQueue:
    """Durable delayed queue; one table, many named queues"""

    def __init__(self, engine, queue=DRAW_QUEUE, visibility_timeout=300, max_attempts=5,
                 retry_backoff=30, clock=time.time):
        self.engine = engine
        self.queue = queue
        self.visibility_timeout = visibility_timeout
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self.clock = clock

    def enqueue(self, payload: str, delay, conn=None) -> str:
        """
        Schedule payload for delivery no earlier than delay from now.

        Args:
            payload: Task body
            delay: timedelta or seconds
            conn: Optional connection to join an outer transaction

        Returns:
            The task id
        """
        task_id = str(uuid.uuid4())
        now = self.clock()
        params = {
            "task_id": task_id,
            "queue": self.queue,
            "payload": payload,
            "due_at": now + max(_seconds(delay), 0.0),
            "now": now,
        }
        statement = text("""
            INSERT INTO scheduled_tasks (task_id, queue, payload, status, due_at, attempts, created_at)
            VALUES (:task_id, :queue, :payload, 'pending', :due_at, 0, :now)
        """)
        if conn is not None:
            conn.execute(statement, params)
        else:
            with self.engine.begin() as own_conn:
                own_conn.execute(statement, params)

        logger.debug(f"Enqueued task {task_id} on {self.queue} (delay {_seconds(delay):.0f}s)")
        return task_id

    def claim_due(self, limit: int = 10) -> List[QueuedTask]:
        """Lease up to limit due tasks; each is invisible to others until acked or the lease ends"""
        now = self.clock()
        with self.engine.connect() as conn:
            rows = conn.execute(text("""
                SELECT task_id FROM scheduled_tasks
                WHERE queue = :queue AND status = 'pending' AND due_at <= :now
                ORDER BY due_at
                LIMIT :limit
            """), {"queue": self.queue, "now": now, "limit": limit}).fetchall()

        claimed = []
        for (task_id,) in rows:
            lease_token = str(uuid.uuid4())
            with self.engine.begin() as conn:
                result = conn.execute(text("""
                    UPDATE scheduled_tasks
                    SET due_at = :lease_until, attempts = attempts + 1, lease_token = :token
                    WHERE task_id = :task_id AND status = 'pending' AND due_at <= :now
                """), {
                    "task_id": task_id,
                    "now": now,
                    "lease_until": now + self.visibility_timeout,
                    "token": lease_token,
                })
                if result.rowcount != 1:
                    continue  # another consumer got it first

                row = conn.execute(text("""
                    SELECT payload, attempts FROM scheduled_tasks WHERE task_id = :task_id
                """), {"task_id": task_id}).fetchone()

            claimed.append(QueuedTask(task_id, row[0], row[1], lease_token))

        return claimed

    def ack(self, task: QueuedTask) -> bool:
        """Delivery finished; remove the task"""
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                DELETE FROM scheduled_tasks WHERE task_id = :task_id AND lease_token = :token
            """), {"task_id": task.task_id, "token": task.lease_token})
        return result.rowcount == 1

    def retry(self, task: QueuedTask, error) -> str:
        """
        Delivery failed; make the task due again after the backoff, or park it.

        Returns:
            'pending' or 'dead'
        """
        if task.attempts >= self.max_attempts:
            self.bury(task, error)
            return "dead"

        with self.engine.begin() as conn:
            conn.execute(text("""
                UPDATE scheduled_tasks
                SET due_at = :due_at, last_error = :error, lease_token = NULL
                WHERE task_id = :task_id AND lease_token = :token
            """), {
                "due_at": self.clock() + self.retry_backoff * task.attempts,
                "error": str(error)[:500],
                "task_id": task.task_id,
                "token": task.lease_token,
            })
        return "pending"

    def postpone(self, task: QueuedTask, delay, reason=None) -> bool:
        """Hand a leased task back without counting the delivery as a failed attempt"""
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                UPDATE scheduled_tasks
                SET due_at = :due_at, attempts = attempts - 1, last_error = :error, lease_token = NULL
                WHERE task_id = :task_id AND lease_token = :token
            """), {
                "due_at": self.clock() + _seconds(delay),
                "error": str(reason)[:500] if reason else None,
                "task_id": task.task_id,
                "token": task.lease_token,
            })
        return result.rowcount == 1

    def bury(self, task: QueuedTask, error):
        """Park a task that can never be delivered"""
        with self.engine.begin() as conn:
            conn.execute(text("""
                UPDATE scheduled_tasks
                SET status = 'dead', last_error = :error, lease_token = NULL
                WHERE task_id = :task_id AND lease_token = :token
            """), {"error": str(error)[:500], "task_id": task.task_id, "token": task.lease_token})
        logger.error(f"💀 Task {task.task_id} parked after {task.attempts} attempt(s): {error}")

    def dead_letters(self) -> List[dict]:
        with self.engine.connect() as conn:
            rows = conn.execute(text("""
                SELECT task_id, payload, attempts, last_error FROM scheduled_tasks
                WHERE queue = :queue AND status = 'dead'
                ORDER BY created_at
            """), {"queue": self.queue}).fetchall()
        return [dict(row._mapping) for row in rows]

    def pending_count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(text("""
                SELECT COUNT(*) FROM scheduled_tasks WHERE queue = :queue AND status = 'pending'
            """), {"queue": self.queue}).scalar()
