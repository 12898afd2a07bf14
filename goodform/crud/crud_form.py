from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from goodform import models
from goodform.schemas import FormCreate, FormFieldBase, FormUpdate


async def create_form(db: AsyncSession, form_in: FormCreate) -> models.Form:
    form_data = form_in.model_dump(exclude={"fields"})
    db_form = models.Form(**form_data)
    db.add(db_form)
    await db.flush()
    if form_in.fields:
        await replace_form_fields(db, db_form.id, form_in.fields)
    await db.refresh(db_form)
    return db_form


async def get_form(db: AsyncSession, form_id: str) -> Optional[models.Form]:
    return await db.get(models.Form, form_id)


async def get_all_forms(db: AsyncSession) -> List[models.Form]:
    result = await db.execute(select(models.Form).order_by(models.Form.updated_at.desc()))
    return list(result.scalars().all())


async def get_form_fields(db: AsyncSession, form_id: str) -> List[models.FormField]:
    result = await db.execute(
        select(models.FormField)
        .where(models.FormField.form_id == form_id)
        .order_by(models.FormField.order)
    )
    return list(result.scalars().all())


async def update_form(
    db: AsyncSession, db_form: models.Form, form_in: FormUpdate
) -> models.Form:
    for key, value in form_in.model_dump(exclude_unset=True).items():
        setattr(db_form, key, value)
    db_form.updated_at = func.now()
    await db.flush()
    await db.refresh(db_form)
    return db_form


async def publish_form(db: AsyncSession, db_form: models.Form) -> models.Form:
    db_form.status = "published"
    db_form.published_at = datetime.now(timezone.utc)
    db_form.updated_at = func.now()
    await db.flush()
    await db.refresh(db_form)
    return db_form


async def delete_form(db: AsyncSession, db_form: models.Form) -> None:
    # Abhängige Zeilen explizit löschen, SQLite erzwingt ON DELETE CASCADE nicht
    for model in (models.ChatMessage, models.Chart, models.FormResponse, models.FormField):
        await db.execute(delete(model).where(model.form_id == db_form.id))
    await db.execute(delete(models.Form).where(models.Form.id == db_form.id))
    await db.flush()


async def replace_form_fields(
    db: AsyncSession, form_id: str, fields_in: List[FormFieldBase]
) -> List[models.FormField]:
    """
    Ersetzt die Felder eines Formulars.

    Mitgeschickte IDs bleiben erhalten, damit gespeicherte Antworten und
    Bedingungen weiterhin auf dieselben Felder zeigen.
    """
    existing = {f.id: f for f in await get_form_fields(db, form_id)}
    kept_ids = set()
    result = []

    for index, field_in in enumerate(fields_in):
        data = field_in.model_dump(exclude={"id"})
        if data.get("conditional_logic") is not None:
            data["conditional_logic"] = field_in.conditional_logic.model_dump(by_alias=True)
        if data.get("order") is None:
            data["order"] = index

        db_field = existing.get(field_in.id) if field_in.id else None
        if db_field is None:
            db_field = models.FormField(form_id=form_id, **data)
            if field_in.id:
                db_field.id = field_in.id
            db.add(db_field)
        else:
            for key, value in data.items():
                setattr(db_field, key, value)
        kept_ids.add(db_field.id)
        result.append(db_field)

    for field_id, db_field in existing.items():
        if field_id not in kept_ids:
            await db.delete(db_field)

    await db.flush()
    return sorted(result, key=lambda f: f.order)


async def count_responses(db: AsyncSession, form_id: str) -> int:
    result = await db.execute(
        select(func.count(models.FormResponse.id)).where(
            models.FormResponse.form_id == form_id
        )
    )
    return result.scalar_one()


async def get_stats(db: AsyncSession) -> dict:
    total_forms = (await db.execute(select(func.count(models.Form.id)))).scalar_one()
    published_forms = (
        await db.execute(
            select(func.count(models.Form.id)).where(models.Form.status == "published")
        )
    ).scalar_one()
    total_responses = (
        await db.execute(select(func.count(models.FormResponse.id)))
    ).scalar_one()
    return {
        "total_forms": total_forms,
        "published_forms": published_forms,
        "draft_forms": total_forms - published_forms,
        "total_responses": total_responses,
    }
