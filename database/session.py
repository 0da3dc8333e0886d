# database/session.py

import logging
import uuid
from datetime import datetime
from typing import AsyncGenerator

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

# Setup SQLAlchemy async engine and session maker
async_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True  # Check connection health before using
)
AsyncSessionLocal = async_sessionmaker(async_engine, expire_on_commit=False)
Base = declarative_base()


# ============= Models =============

class DocumentEntity(Base):
    __tablename__ = "documents"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    filename = Column(String, nullable=False)
    file_hash = Column(String, unique=True, index=True, nullable=True)
    # Text, a preview of it when chunked, or a latin-1 binary string for PDF/DOCX
    content = Column(Text, nullable=True)
    extracted_text = Column(Text, nullable=True)
    chunked = Column(Boolean, default=False, nullable=False)
    has_embeddings = Column(Boolean, default=False, nullable=False)
    meta = Column(JSON, nullable=True)  # structured facts and upstream metadata
    timestamp = Column(DateTime, default=datetime.utcnow)


class ChunkEntity(Base):
    __tablename__ = "document_chunks"
    id = Column(String, primary_key=True)
    document_id = Column(String, ForeignKey("documents.id", ondelete="CASCADE"), index=True, nullable=False)
    chunk_number = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)


# ============= Schema =============

async def create_tables() -> None:
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified")


# ============= Dependencies =============

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Provide database session for FastAPI dependency injection"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
