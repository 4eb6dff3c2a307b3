import re
import logging
from contextlib import asynccontextmanager

import motor.motor_asyncio
from beanie import init_beanie

from app.database.models import DOCUMENT_MODELS
from app.core import Settings

logger = logging.getLogger(__name__)

# Global database instance
client = None
database = None


def _mask_mongo_uri(uri: str) -> str:
    # Never log credentials; keep only scheme and host
    m = re.match(r'(?P<prefix>mongodb(?:\+srv)?://)(?:(?P<creds>[^@]+)@)?(?P<rest>.+)', uri or "")
    if not m:
        return "mongodb://<redacted>"
    host_part = m.group('rest').split('/')[0]
    return f"{m.group('prefix')}***@{host_part}"


async def init_db(mongo_client=None):
    global client, database
    mongodb_uri = Settings.MONGODB_URI
    mongodb_db_name = Settings.MONGODB_DB_NAME

    if mongo_client is None:
        if not mongodb_uri:
            logger.error("MONGODB_URI is not set in environment variables")
            raise RuntimeError("Configuration error: MONGODB_URI is not set in environment variables")
        logger.info(f"Attempting to connect to MongoDB at: {_mask_mongo_uri(mongodb_uri)}")
        mongo_client = motor.motor_asyncio.AsyncIOMotorClient(
            mongodb_uri,
            tls=Settings.MONGODB_TLS,
            serverSelectionTimeoutMS=30000,
            connectTimeoutMS=30000,
            socketTimeoutMS=30000,
            retryWrites=True,
            w='majority'
        )

    if not mongodb_db_name:
        logger.error("MONGODB_DB_NAME is not set in environment variables")
        raise RuntimeError("Configuration error: MONGODB_DB_NAME is not set in environment variables")

    try:
        logger.info("Testing MongoDB connection...")
        await mongo_client.admin.command('ping')
        logger.info("Successfully connected to MongoDB!")

        database = mongo_client[mongodb_db_name]
        logger.info("Database name: %s", mongodb_db_name)

        logger.info("Initializing Beanie with document models...")
        await init_beanie(database, document_models=DOCUMENT_MODELS)
        logger.info("Beanie initialized successfully!")
    except Exception as e:
        logger.error(f"Database initialization failed: {type(e).__name__}: {e}")
        raise

    client = mongo_client
    return database


async def close_db():
    global client, database
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
    client = None
    database = None


@asynccontextmanager
async def transaction():
    """Yield a session with an open transaction, or ``None``.

    ``None`` means the deployment cannot run multi-document transactions
    (standalone server, ``MONGODB_TRANSACTIONS=false`` or no client) and the
    caller is responsible for compensating on failure.
    """
    if client is None or not Settings.MONGODB_TRANSACTIONS:
        yield None
        return

    async with await client.start_session() as session:
        session.start_transaction()
        try:
            yield session
        except BaseException:
            await session.abort_transaction()
            raise
        await session.commit_transaction()
