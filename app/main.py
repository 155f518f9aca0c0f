import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient

from app.simulations.app import setup_simulation_routes, startup_simulation_system
from app.simulations.config import DB_NAME, MONGO_URL

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Lumetrics Simulation Engine")

# MongoDB Configuration
client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]


@app.on_event("startup")
async def startup_event():
    await startup_simulation_system(app, db)


@app.on_event("shutdown")
async def shutdown_event():
    client.close()


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Retry-After"]
)

# ==================== ROUTER REGISTRATION ====================
setup_simulation_routes(app)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "simulation-engine"}
