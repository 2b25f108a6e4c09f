"""
Giveaway draw worker
Consumes the delayed draw queue and ends giveaways when they are due
"""

import logging
import signal

import config
from app import build_manager
from core.dispatcher import DeferredRunner
from giveaways.scheduler import DrawScheduler
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main():
    setup_logging(log_level=config.LOG_LEVEL, log_file=config.LOG_FILE)

    # Draws run on scheduler threads, nothing is deferred here
    manager = build_manager(runner=DeferredRunner(inline=True))
    scheduler = DrawScheduler(
        manager.queue,
        manager.handle_draw_task,
        poll_interval=config.SCHEDULER_POLL_INTERVAL,
        workers=config.SCHEDULER_WORKERS,
    )

    def shutdown(signum, frame):
        logger.info(f"Received signal {signum}, stopping worker")
        scheduler.stop()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    pending = manager.queue.pending_count()
    logger.info(f"🎁 Giveaway worker starting ({pending} draw(s) pending)")
    scheduler.run_forever()


if __name__ == '__main__':
    main()
