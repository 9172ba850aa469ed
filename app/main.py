# main.py

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.api.error_handlers import register_error_handlers
from app.api.v1.routes.reward_anomaly_route import router as reward_anomaly_router
from app.core.dsa.redis_dsa import RedisReportCache
from app.db.mongodb import connect_to_mongo, close_mongo_connection, get_database
from app.db.redis_client import connect_to_redis, close_redis_connection
from app.db.reward_event_store import MongoProfileDirectory, MongoRewardEventStore
from app.services.report_cache import ReportCache
from app.services.reward_anomaly_service import RewardAnomalyService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# -----------------------------
# FASTAPI APP
# -----------------------------
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Reward anomaly detection for the creator dashboard"
)

# -----------------------------
# CORS MIDDLEWARE
# -----------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# -----------------------------
# ROUTERS
# -----------------------------
app.include_router(reward_anomaly_router, prefix="/api/v1/admin")


# -----------------------------
# STARTUP EVENT
# -----------------------------
@app.on_event("startup")
async def startup_event():
    logger.info("Starting %s...", settings.PROJECT_NAME)
    await connect_to_mongo()

    db = await get_database()
    store = MongoRewardEventStore(
        db,
        max_time_ms=int(settings.STORE_QUERY_TIMEOUT_SECONDS * 1000),
        snapshot_reads=settings.MONGO_SNAPSHOT_READS,
    )
    await store.ensure_indexes()
    logger.info("Reward event indexes ensured")

    redis_client = await connect_to_redis()

    app.state.reward_anomaly_service = RewardAnomalyService(
        store=store,
        profiles=MongoProfileDirectory(db),
        config=settings.engine_settings(),
        query_timeout=settings.STORE_QUERY_TIMEOUT_SECONDS,
        cache=ReportCache(
            ttl_seconds=settings.REPORT_CACHE_TTL_SECONDS,
            shared=RedisReportCache(redis_client),
        ),
        parallel=settings.PARALLEL_ANALYSIS,
    )


# -----------------------------
# SHUTDOWN EVENT
# -----------------------------
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down API...")
    await close_redis_connection()
    await close_mongo_connection()


# -----------------------------
# ROOT ENDPOINT
# -----------------------------
@app.get("/", tags=["Health"])
def root():
    return {
        "message": "Reward Anomaly Engine Running",
        "version": "1.0.0",
        "docs": "/docs"
    }
