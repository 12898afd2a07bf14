import csv
import io
import logging
from typing import Any, List
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from goodform import crud, models, schemas
from goodform.aggregation import display_string, normalize_answers, resolve_value
from goodform.api.deps import get_db_session, verify_admin_token
from goodform.conditional_logic import validate_conditional_logic

logger = logging.getLogger(__name__)

router = APIRouter()


def form_payload(form: models.Form, fields: List[models.FormField]) -> dict:
    data = {column.name: getattr(form, column.name) for column in form.__table__.columns}
    data["fields"] = [schemas.FormFieldResponse.model_validate(f) for f in fields]
    return data


async def get_form_or_404(db: AsyncSession, form_id: str) -> models.Form:
    form = await crud.crud_form.get_form(db, form_id)
    if form is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Formulario no encontrado"
        )
    return form


def check_field_logic(fields: List[schemas.FormFieldBase]) -> None:
    errors = validate_conditional_logic(fields)
    ids = [f.id for f in fields if f.id]
    if len(ids) != len(set(ids)):
        errors.append("Los IDs de campo deben ser únicos")
    if errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=errors
        )


@router.post(
    "/api/forms",
    response_model=schemas.FormResponseSchema,
    status_code=status.HTTP_201_CREATED,
)
async def create_form(
    form_in: schemas.FormCreate,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    check_field_logic(form_in.fields)
    logger.info(
        "Admin '%s' erstellt ein neues Formular: '%s'", admin_user["username"], form_in.title
    )
    form = await crud.crud_form.create_form(db, form_in)
    fields = await crud.crud_form.get_form_fields(db, form.id)
    await db.commit()
    return form_payload(form, fields)


@router.get("/api/forms", response_model=List[schemas.FormListItem])
async def list_forms(
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    """Alle Formulare mit Anzahl der Antworten."""
    forms = await crud.crud_form.get_all_forms(db)
    items = []
    for form in forms:
        item = schemas.FormListItem.model_validate(form)
        item.response_count = await crud.crud_form.count_responses(db, form.id)
        items.append(item)
    return items


@router.get("/api/dashboard/stats", response_model=schemas.DashboardStats)
async def dashboard_stats(
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    return await crud.crud_form.get_stats(db)


@router.get("/api/forms/{form_id}", response_model=schemas.FormResponseSchema)
async def get_form(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    form = await get_form_or_404(db, form_id)
    fields = await crud.crud_form.get_form_fields(db, form_id)
    return form_payload(form, fields)


@router.patch("/api/forms/{form_id}", response_model=schemas.FormResponseSchema)
async def update_form(
    form_id: str,
    form_in: schemas.FormUpdate,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    form = await get_form_or_404(db, form_id)
    logger.info("Admin '%s' aktualisiert Formular ID: %s", admin_user["username"], form_id)
    form = await crud.crud_form.update_form(db, form, form_in)
    fields = await crud.crud_form.get_form_fields(db, form_id)
    await db.commit()
    return form_payload(form, fields)


@router.delete("/api/forms/{form_id}", response_model=schemas.FormDeleteResponse)
async def delete_form(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    form = await get_form_or_404(db, form_id)
    logger.info("Admin '%s' löscht Formular ID: %s", admin_user["username"], form_id)
    await crud.crud_form.delete_form(db, form)
    await db.commit()
    return schemas.FormDeleteResponse(form_id=form_id)


@router.post("/api/forms/{form_id}/publish", response_model=schemas.FormResponseSchema)
async def publish_form(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    form = await get_form_or_404(db, form_id)
    form = await crud.crud_form.publish_form(db, form)
    fields = await crud.crud_form.get_form_fields(db, form_id)
    await db.commit()
    logger.info("Formular %s veröffentlicht.", form_id)
    return form_payload(form, fields)


@router.put(
    "/api/forms/{form_id}/fields", response_model=List[schemas.FormFieldResponse]
)
async def replace_form_fields(
    form_id: str,
    fields_in: schemas.FormFieldsUpdate,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    await get_form_or_404(db, form_id)
    check_field_logic(fields_in.fields)
    fields = await crud.crud_form.replace_form_fields(db, form_id, fields_in.fields)
    await db.commit()
    logger.info("%s Felder für Formular %s gespeichert.", len(fields), form_id)
    return fields


@router.get(
    "/api/forms/{form_id}/responses", response_model=List[schemas.FormResponseOut]
)
async def list_form_responses(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    await get_form_or_404(db, form_id)
    return await crud.crud_response.get_responses_for_form(db, form_id)


def _csv_cell(value: Any) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(display_string(v) for v in value)
    return display_string(value)


@router.get(
    "/api/forms/{form_id}/export/csv",
    response_description="CSV file of form responses",
)
async def export_form_responses_to_csv(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    """
    Exports all responses of a form to a CSV file.
    Visual forms get one column per field (by label); code-mode forms get one
    column per answer key seen in the responses. Captured URL parameters follow.
    """
    form = await get_form_or_404(db, form_id)
    logger.info(
        "Admin '%s' requested CSV export for form ID %s.", admin_user["username"], form_id
    )
    fields = await crud.crud_form.get_form_fields(db, form_id)
    responses = await crud.crud_response.get_responses_for_form(db, form_id)

    if form.builder_mode == "visual" and fields:
        columns = [(f.id, f.label) for f in fields]
    else:
        keys = {}
        for response in responses:
            for key in normalize_answers(response.answers):
                keys[key] = None
        columns = [(key, key) for key in keys]

    param_keys = {}
    for name in form.url_params or []:
        param_keys[name] = None
    for response in responses:
        for key in response.url_params or {}:
            param_keys[key] = None
    answer_keys = {key for key, _ in columns}
    param_columns = [key for key in param_keys if key not in answer_keys]

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(
        ["ID", "Fecha de Envío", "Email"]
        + [label for _, label in columns]
        + param_columns
    )
    for response in responses:
        row = [
            response.id,
            response.submitted_at.isoformat() if response.submitted_at else "",
            response.respondent_email or "",
        ]
        row += [_csv_cell(resolve_value(response, key)) for key, _ in columns]
        row += [_csv_cell((response.url_params or {}).get(key)) for key in param_columns]
        writer.writerow(row)

    output.seek(0)
    # Header-Werte sind latin-1: ASCII-Fallback plus RFC 5987 filename*
    safe_title = "".join(c if c.isascii() and c.isalnum() else "_" for c in form.title)
    filename = f"{safe_title}_respuestas.csv"
    utf8_filename = quote(f"{form.title}_respuestas.csv", safe="")

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={
            "Content-Disposition": (
                f"attachment; filename=\"{filename}\"; filename*=UTF-8''{utf8_filename}"
            )
        },
    )
