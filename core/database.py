from motor.motor_asyncio import AsyncIOMotorClient
from core.config import settings

# Connection is lazy: nothing touches the network until the first query
client = AsyncIOMotorClient(settings.MONGO_URI)
db = client[settings.DB_NAME]
