import json
import redis.asyncio as redis
import os
from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Connection Pool (Reusable)
pool = redis.ConnectionPool.from_url(REDIS_URL, decode_responses=True)

class RedisManager:
    @staticmethod
    def get_client() -> redis.Redis:
        """
        Returns an async Redis client from the global connection pool.
        """
        return redis.Redis(connection_pool=pool)

    @staticmethod
    def notification_channel(member_id: int) -> str:
        return f"user:{member_id}:notifications"

    @staticmethod
    async def publish_chat_notification(receiver_id: int, payload: dict) -> int:
        """
        채팅 알림을 수신자 채널로 발행합니다. 구독자 수를 반환합니다.
        """
        client = RedisManager.get_client()
        return await client.publish(
            RedisManager.notification_channel(receiver_id),
            json.dumps(payload, ensure_ascii=False),
        )

    @staticmethod
    async def close():
        await pool.disconnect()
