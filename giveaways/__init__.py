"""
Giveaway System

Modules:
- models: Giveaway record and participant types
- database: Schema and engine setup
- store: Versioned record storage with draw claims
- queue: Durable delayed task queue
- scheduler: Queue consumer running due draws
- manager: Commands, buttons and the draw procedure
"""

from .database import create_db_engine, setup_giveaway_database
from .manager import GiveawayManager, pick_winners
from .models import GiveawayRecord, Participant
from .queue import DRAW_QUEUE, DelayedTaskQueue, ScheduledDrawTask, TaskAbandoned
from .scheduler import DrawScheduler
from .store import ConcurrentUpdateError, GiveawayStore

__all__ = [
    'create_db_engine',
    'setup_giveaway_database',
    'GiveawayManager',
    'pick_winners',
    'GiveawayRecord',
    'Participant',
    'DRAW_QUEUE',
    'DelayedTaskQueue',
    'ScheduledDrawTask',
    'TaskAbandoned',
    'DrawScheduler',
    'ConcurrentUpdateError',
    'GiveawayStore',
]
