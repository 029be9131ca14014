"""
Identifier resolution for freshly inserted rows.

Some backends hand back generated keys from the insert itself (RETURNING),
others do not. IdentityResolver hides that difference behind a single
create_and_resolve() call: it tries the direct route first and falls back
to re-selecting the row by its natural key.
"""

from typing import Any, Dict

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from scorebook.utils.import_exceptions import IdentifierResolutionError
from scorebook.utils.logger import setup_logger

logger = setup_logger(__name__)


class IdentityResolver:
    """Insert a row and return its assigned id, whatever the backend supports"""
    
    def __init__(self, supports_returning: bool = False):
        """
        Args:
            supports_returning: Whether INSERT ... RETURNING may be used
        """
        self.supports_returning = supports_returning
    
    @classmethod
    def for_database(cls, database) -> 'IdentityResolver':
        """Build a resolver matching an initialized Database's dialect"""
        dialect = database.engine.dialect
        return cls(supports_returning=bool(getattr(dialect, 'insert_returning', False)))
    
    async def create_and_resolve(
        self,
        session: AsyncSession,
        model,
        values: Dict[str, Any],
        natural_key: Dict[str, Any]
    ) -> int:
        """
        Insert one row and resolve its primary key.
        
        Args:
            session: Session inside the import transaction
            model: Mapped class to insert into
            values: Column values for the new row
            natural_key: Unique column values that identify the row afterwards
            
        Returns:
            The id assigned by the store
            
        Raises:
            IdentifierResolutionError: If the id cannot be recovered after insert
        """
        statement = insert(model).values(**values)
        
        if self.supports_returning:
            result = await session.execute(statement.returning(model.id))
            row_id = result.scalar_one_or_none()
            if row_id is not None:
                return row_id
            logger.debug(f"{model.__tablename__}: insert returned no id, looking up {natural_key}")
        else:
            await session.execute(statement)
        
        row_id = await self.lookup(session, model, natural_key)
        if row_id is None:
            raise IdentifierResolutionError(model.__tablename__, natural_key)
        return row_id
    
    async def lookup(self, session: AsyncSession, model, natural_key: Dict[str, Any]):
        """Find a row id by its natural key"""
        conditions = [getattr(model, column) == value for column, value in natural_key.items()]
        result = await session.execute(select(model.id).where(*conditions))
        return result.scalar_one_or_none()
