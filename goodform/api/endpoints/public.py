import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from goodform import crud, models, schemas
from goodform.aggregation import normalize_answers
from goodform.api.deps import get_db_session
from goodform.api.endpoints.forms import form_payload
from goodform.conditional_logic import missing_required_fields

logger = logging.getLogger(__name__)

router = APIRouter()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite liefert naive Zeitstempel zurück
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def ensure_form_available(form: Optional[models.Form]) -> models.Form:
    """Nur veröffentlichte, öffentliche Formulare innerhalb des Zeitfensters."""
    if form is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Formulario no encontrado"
        )
    if form.status != "published" or form.share_type != "public":
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Formulario no disponible"
        )

    now = datetime.now(timezone.utc)
    start = _as_utc(form.publish_start_date)
    end = _as_utc(form.publish_end_date)
    if start and now < start:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "message": "Este formulario aún no está disponible",
                "availableFrom": start.isoformat(),
            },
        )
    if end and now > end:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "message": "Este formulario ya no está disponible",
                "availableUntil": end.isoformat(),
            },
        )
    return form


@router.get("/api/public/forms/{form_id}", response_model=schemas.PublicFormResponse)
async def get_public_form(form_id: str, db: AsyncSession = Depends(get_db_session)):
    form = ensure_form_available(await crud.crud_form.get_form(db, form_id))
    fields = await crud.crud_form.get_form_fields(db, form_id)
    return form_payload(form, fields)


@router.post(
    "/api/public/forms/{form_id}/submit",
    response_model=schemas.FormResponseOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_public_form(
    form_id: str,
    submission: schemas.SubmissionCreate,
    db: AsyncSession = Depends(get_db_session),
):
    """
    Speichert eine Antwort. Bei visuellen Formularen werden nur die aktuell
    sichtbaren Pflichtfelder erzwungen (gleiche Regel wie im Frontend).
    """
    form = ensure_form_available(await crud.crud_form.get_form(db, form_id))
    answers = normalize_answers(submission.answers)

    if form.builder_mode == "visual":
        fields = await crud.crud_form.get_form_fields(db, form_id)
        missing = missing_required_fields(fields, answers)
        if missing:
            labels = ", ".join(f.label for f in missing)
            logger.info("Antwort für Formular %s abgelehnt, fehlende Felder: %s", form_id, labels)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Faltan campos obligatorios: {labels}",
            )

    url_params = submission.url_params or {}
    if form.url_params:
        url_params = {k: v for k, v in url_params.items() if k in form.url_params}

    response = await crud.crud_response.create_response(
        db, form_id, answers, email=submission.email, url_params=url_params
    )
    await db.commit()
    logger.info("Antwort %s für Formular %s gespeichert.", response.id, form_id)
    return response
