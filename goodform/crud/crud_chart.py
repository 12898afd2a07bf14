from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from goodform import models
from goodform.schemas import ChartCreate


async def create_chart(db: AsyncSession, form_id: str, chart_in: ChartCreate) -> models.Chart:
    db_chart = models.Chart(form_id=form_id, **chart_in.model_dump())
    db.add(db_chart)
    await db.flush()
    await db.refresh(db_chart)
    return db_chart


async def get_chart(db: AsyncSession, chart_id: str) -> Optional[models.Chart]:
    return await db.get(models.Chart, chart_id)


async def get_charts_for_form(db: AsyncSession, form_id: str) -> List[models.Chart]:
    result = await db.execute(
        select(models.Chart)
        .where(models.Chart.form_id == form_id)
        .order_by(models.Chart.created_at.desc())
    )
    return list(result.scalars().all())


async def update_chart(
    db: AsyncSession, db_chart: models.Chart, updates: Dict[str, Any]
) -> models.Chart:
    for key, value in updates.items():
        setattr(db_chart, key, value)
    db_chart.updated_at = func.now()
    await db.flush()
    await db.refresh(db_chart)
    return db_chart


async def delete_chart(db: AsyncSession, db_chart: models.Chart) -> None:
    await db.delete(db_chart)
    await db.flush()
