from typing import Optional, List, Dict
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import select, delete, func, event, text
from contextlib import asynccontextmanager

from scorebook.config import Config
from scorebook.constants import TableConstants
from scorebook.database.models import Base, Player, Session, Round, Game
from scorebook.utils.logger import setup_logger

# Wipe order must match TableConstants.WIPE_ORDER
WIPE_MODELS = (Game, Round, Session, Player)
MODELS_BY_TABLE = {model.__tablename__: model for model in WIPE_MODELS}

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = Config.get_async_database_url(database_url)
        self.engine = None
        self.async_session = None
        
    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")
        
        self.engine = create_async_engine(
            self.database_url,
            echo=Config.DEBUG,
            future=True
        )
        
        if self.engine.dialect.name == 'sqlite':
            # SQLite leaves foreign keys unenforced unless asked per connection
            @event.listens_for(self.engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        
        # Create all tables
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            
        self.logger.info("Database initialized successfully")
    
    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()
    
    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.
        
        All statements issued through the yielded session are committed together
        when the block exits normally, or rolled back together when it raises.
        
        Usage:
            async with db.transaction() as session:
                await db.clear_all_tables(session)
                ...
                # Everything commits together here
        
        A rollback that itself fails is logged and the original exception is
        re-raised unchanged. Exceptions must be allowed to propagate out of the
        context for rollback to occur.
        """
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                try:
                    await session.rollback()
                except Exception as rollback_error:
                    self.logger.error(f"Rollback failed: {rollback_error}")
                raise
            finally:
                await session.close()
    
    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")
    
    # Wipe operations
    async def clear_all_tables(self, session: AsyncSession) -> Dict[str, int]:
        """Delete every row from games, rounds, sessions and players, children first"""
        self.logger.info("Clearing existing games, rounds, sessions and players...")
        
        deleted = {}
        for table_name in TableConstants.WIPE_ORDER:
            model = MODELS_BY_TABLE[table_name]
            result = await session.execute(delete(model))
            deleted[table_name] = result.rowcount
        await session.flush()
        
        self.logger.info(f"Existing data cleared: {deleted}")
        return deleted
    
    async def reset_identifier_sequences(self, session: AsyncSession) -> bool:
        """
        Restart auto-assigned ids for the four import tables.
        
        Best effort: identifier values carry no meaning, so any failure is
        logged and reported as False without disturbing the enclosing
        transaction.
        """
        try:
            return await self._restart_sequences(session, self.engine.dialect.name)
        except Exception as e:
            self.logger.warning(f"Could not reset identifier sequences (continuing): {e}")
            return False
    
    async def _restart_sequences(self, session: AsyncSession, dialect: str) -> bool:
        """Issue the dialect-specific sequence restart; False when unsupported"""
        tables = TableConstants.WIPE_ORDER
        if dialect == 'sqlite':
            result = await session.execute(text(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='sqlite_sequence'"
            ))
            if result.scalar_one_or_none() is None:
                return True
            params = {f"t{i}": name for i, name in enumerate(tables)}
            placeholders = ", ".join(f":{key}" for key in params)
            await session.execute(
                text(f"DELETE FROM sqlite_sequence WHERE name IN ({placeholders})"),
                params
            )
        elif dialect == 'postgresql':
            # Savepoint keeps a failed ALTER from aborting the outer transaction
            async with session.begin_nested():
                for table_name in tables:
                    await session.execute(text(f"ALTER SEQUENCE {table_name}_id_seq RESTART WITH 1"))
        else:
            self.logger.debug(f"No identifier sequence reset for dialect '{dialect}'")
            return False
        return True
    
    # Read operations
    async def count_rows(self) -> Dict[str, int]:
        """Get row counts for the four import tables"""
        async with self.get_session() as session:
            counts = {}
            for table_name in TableConstants.WIPE_ORDER:
                model = MODELS_BY_TABLE[table_name]
                result = await session.execute(select(func.count(model.id)))
                counts[table_name] = result.scalar()
            return counts
    
    async def get_all_players(self) -> List[Player]:
        """Get all players ordered by name"""
        async with self.get_session() as session:
            result = await session.execute(select(Player).order_by(Player.name))
            return result.scalars().all()
    
    async def get_player_by_name(self, name: str) -> Optional[Player]:
        """Get a player by exact normalized name"""
        async with self.get_session() as session:
            result = await session.execute(select(Player).where(Player.name == name))
            return result.scalar_one_or_none()
    
    async def get_all_sessions(self) -> List[Session]:
        """Get all sessions ordered by date and location"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Session).order_by(Session.date, Session.location)
            )
            return result.scalars().all()
    
    async def get_rounds_for_session(self, session_id: int) -> List[Round]:
        """Get the rounds of one session in round order"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Round)
                .where(Round.session_id == session_id)
                .order_by(Round.round_number)
            )
            return result.scalars().all()
    
    async def get_all_games(self) -> List[Game]:
        """Get all games in insertion order"""
        async with self.get_session() as session:
            result = await session.execute(select(Game).order_by(Game.id))
            return result.scalars().all()
