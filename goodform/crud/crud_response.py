from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from goodform import models
from goodform.aggregation import normalize_answers


async def create_response(
    db: AsyncSession,
    form_id: str,
    answers: Dict[str, Any],
    email: Optional[str] = None,
    url_params: Optional[Dict[str, Any]] = None,
) -> models.FormResponse:
    db_response = models.FormResponse(
        form_id=form_id,
        respondent_email=email,
        answers=normalize_answers(answers),
        url_params=url_params or None,
    )
    db.add(db_response)
    await db.flush()
    await db.refresh(db_response)
    return db_response


async def get_responses_for_form(
    db: AsyncSession,
    form_id: str,
    limit: Optional[int] = None,
    newest_first: bool = True,
) -> List[models.FormResponse]:
    submitted_at = models.FormResponse.submitted_at
    stmt = (
        select(models.FormResponse)
        .where(models.FormResponse.form_id == form_id)
        .order_by(submitted_at.desc() if newest_first else submitted_at.asc())
    )
    if limit:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
