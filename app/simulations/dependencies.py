from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.ai.services import ContentGenerator, build_content_generator


def get_db_instance():
    """Get database from main module"""
    from app.main import db
    return db

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()


async def get_content_generator(request: Request) -> ContentGenerator:
    """Content generator built once at startup"""
    generator = getattr(request.app.state, "content_generator", None)
    if generator is None:
        generator = build_content_generator()
        request.app.state.content_generator = generator
    return generator
