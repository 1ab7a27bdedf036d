from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recall.config import Settings, get_settings
from recall.database import get_db
from recall.services.scheduler_service import SchedulerService


async def get_scheduler(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SchedulerService:
    """Dependency that provides a scheduler bound to the request session."""
    return SchedulerService(db, settings=settings)


# Type alias for cleaner dependency injection
Scheduler = Annotated[SchedulerService, Depends(get_scheduler)]
