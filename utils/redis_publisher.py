"""
Redis Publisher for Giveaway Events
Publishes giveaway lifecycle events to a Redis channel for dashboards
"""

import json
import logging
import os
from datetime import datetime, timezone

import redis

logger = logging.getLogger(__name__)

GIVEAWAY_CHANNEL = 'bot:giveaways'


class BotRedisPublisher:
    def __init__(self, redis_url=None, client=None):
        self.client = client
        self.enabled = client is not None
        if self.enabled:
            return

        redis_url = redis_url if redis_url is not None else os.getenv('REDIS_URL')
        if redis_url:
            if '://' not in redis_url:
                redis_url = f'redis://{redis_url}'
            try:
                self.client = redis.from_url(redis_url, decode_responses=True, socket_timeout=5)
                self.client.ping()
                self.enabled = True
                logger.info("✅ Redis publisher connected")
            except redis.RedisError as e:
                logger.warning(f"⚠️ Redis unavailable for publisher: {e}")
                self.enabled = False
        else:
            logger.info("REDIS_URL not set, giveaway events will not be published")

    def publish(self, channel, action, data=None):
        """Publish an event to a Redis channel"""
        if not self.enabled:
            return False

        try:
            message = json.dumps({
                'action': action,
                'data': data or {},
                'timestamp': datetime.now(timezone.utc).isoformat()
            })
            self.client.publish(channel, message)
            logger.debug(f"📤 Published to {channel}: {action}")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Failed to publish to {channel}: {e}")
            return False

    def publish_giveaway_created(self, interaction_id, channel_id, message_id, prize, ends_at, winners):
        return self.publish(GIVEAWAY_CHANNEL, 'giveaway_created', {
            'interaction_id': interaction_id,
            'channel_id': channel_id,
            'message_id': message_id,
            'prize': prize,
            'ends_at': ends_at.isoformat(),
            'winners': winners
        })

    def publish_giveaway_ended(self, interaction_id, channel_id, message_id, winner_ids):
        return self.publish(GIVEAWAY_CHANNEL, 'giveaway_ended', {
            'interaction_id': interaction_id,
            'channel_id': channel_id,
            'message_id': message_id,
            'winner_ids': list(winner_ids)
        })
