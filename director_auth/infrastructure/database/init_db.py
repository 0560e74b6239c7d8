"""Database initialization and maintenance utilities."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

from alembic import command
from alembic.config import Config
from sqlalchemy import text

from director_auth.core.auth.entities import CleanupResult, User
from director_auth.core.auth.services import AuthenticationService, PasswordService, TokenService
from director_auth.core.domain.enums import UserRole
from director_auth.infrastructure.database.connection import Base
from director_auth.infrastructure.database.repositories.audit_log_repository import SqlAuditLogRepository
from director_auth.infrastructure.database.repositories.refresh_token_repository import SqlRefreshTokenRepository
from director_auth.infrastructure.database.repositories.session_repository import SqlSessionRepository
from director_auth.infrastructure.database.repositories.user_repository import SqlUserRepository
from director_auth.infrastructure.database.session import get_engine, get_session_maker

logger = logging.getLogger("director_auth")

TABLES = ("users", "sessions", "refresh_tokens", "audit_logs")


def get_alembic_config() -> Config:
    """Get Alembic configuration."""
    project_root = Path(__file__).parent.parent.parent.parent
    return Config(str(project_root / "alembic.ini"))


def run_alembic_migrations() -> None:
    """Run all pending Alembic migrations."""
    command.upgrade(get_alembic_config(), "head")


async def create_tables() -> None:
    """Create any missing tables straight from the model metadata."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(use_migrations: bool = True) -> None:
    """Initialize the database schema."""
    try:
        if use_migrations:
            logger.info("Running database migrations...")
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, run_alembic_migrations)
            logger.info("Database migrations completed successfully")
        else:
            await create_tables()
            logger.info("Database tables created")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def cleanup_expired_tokens() -> CleanupResult:
    """Sweep expired refresh tokens and sessions in their own transaction."""
    session_maker = get_session_maker()
    async with session_maker() as session:
        token_service = TokenService(
            SqlRefreshTokenRepository(session),
            SqlSessionRepository(session),
        )
        result = await token_service.cleanup_expired_tokens()
        await session.commit()
        return result


async def create_admin_user(
    email: str,
    username: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Tuple[User, str]:
    """
    Register an administrator account and mark it verified.

    Returns:
        The created user and its verification token
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            user_repo = SqlUserRepository(session)
            session_repo = SqlSessionRepository(session)
            auth_service = AuthenticationService(
                user_repo,
                SqlAuditLogRepository(session),
                PasswordService(),
                TokenService(SqlRefreshTokenRepository(session), session_repo),
            )
            result = await auth_service.register_user(
                email=email,
                username=username,
                password=password,
                first_name=first_name,
                last_name=last_name,
                role=UserRole.ADMIN,
            )
            await user_repo.mark_verified(result.user.id)
            await session.commit()
            return result.user, result.verification_token
        except Exception:
            await session.rollback()
            raise


async def check_database_health() -> bool:
    """Check database connectivity and health."""
    try:
        session_maker = get_session_maker()
        async with session_maker() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception:
        logger.exception("Database health check failed")
        return False


async def get_database_info() -> dict:
    """Get database information and statistics."""
    try:
        session_maker = get_session_maker()
        async with session_maker() as session:
            tables = {}
            for table in TABLES:
                count = await session.execute(text(f"SELECT COUNT(*) FROM {table}"))
                tables[table] = count.scalar()

            return {
                "healthy": True,
                "tables": tables,
                "engine_info": str(get_engine().url),
            }
    except Exception as e:
        return {
            "healthy": False,
            "error": str(e),
        }
