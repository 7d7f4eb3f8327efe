import logging
import math
import unicodedata
from typing import Any, Dict, List, Optional, Union

from models.schemas import Modality, RowError, ValidatedEvent, ValidationResult
from services.time_format import is_valid_time
from services.week_resolver import ACCEPTED_WEEKDAYS, normalize_weekday

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("instructor", "regional", "titulo", "dia")

DEFAULT_LOCATION = "Por definir"

# Normalized column header -> field name
COLUMN_ALIASES = {
    "instructor": "instructor",
    "regional": "regional",
    "titulo": "titulo",
    "detalles": "detalles",
    "ubicacion": "ubicacion",
    "dia": "dia",
    "horainicio": "horaInicio",
    "horafin": "horaFin",
    "modalidad": "modalidad",
}

# Header row occupies line 1 of the sheet
HEADER_OFFSET = 2


def _normalize_header(key: Any) -> str:
    # "Hora Inicio", "hora_inicio", "HoraInicio", "Día" -> "horainicio" / "dia"
    text = unicodedata.normalize("NFKD", str(key).strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return "".join(ch for ch in text if ch not in " _-")


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def normalize_row(row: Dict[str, Any]) -> Dict[str, str]:
    """Map loosely-cased columns onto field names. Unknown columns are dropped."""
    out: Dict[str, str] = {}
    for key, value in row.items():
        field = COLUMN_ALIASES.get(_normalize_header(key))
        if field and not out.get(field):
            out[field] = _clean(value)
    return out


def _split_details(text: str) -> Union[str, List[str]]:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) > 1:
        return lines
    return lines[0] if lines else ""


def _parse_modality(text: str) -> Optional[Modality]:
    if not text:
        return None
    for modality in Modality:
        if modality.value.lower() == text.lower():
            return modality
    log.warning("Ignoring unknown modality %r", text)
    return None


def validate_rows(rows: List[Dict[str, Any]]) -> ValidationResult:
    """
    Phase 1 of an import: validate raw tabular rows without side effects.

    All-or-nothing: if any row has an error, valid_rows is empty and the
    batch must not be merged. Errors for every row are still reported.
    """
    errors: List[RowError] = []
    validated: List[ValidatedEvent] = []

    for index, raw in enumerate(rows):
        row_number = index + HEADER_OFFSET
        row = normalize_row(raw)
        row_errors: List[RowError] = []

        for field in REQUIRED_FIELDS:
            if not row.get(field):
                row_errors.append(RowError(
                    row=row_number,
                    field=field,
                    message=f'El campo "{field}" es requerido',
                    value=row.get(field),
                ))

        dia = row.get("dia", "")
        if dia and normalize_weekday(dia) is None:
            row_errors.append(RowError(
                row=row_number,
                field="dia",
                message=f"El día debe ser uno de: {', '.join(ACCEPTED_WEEKDAYS)}",
                value=dia,
            ))

        for field, label in (("horaInicio", "inicio"), ("horaFin", "fin")):
            value = row.get(field, "")
            if value and not is_valid_time(value):
                row_errors.append(RowError(
                    row=row_number,
                    field=field,
                    message=f'La hora de {label} debe estar en formato "H:MM a.m." o "H:MM p.m."',
                    value=value,
                ))

        if row_errors:
            errors.extend(row_errors)
            continue

        validated.append(ValidatedEvent(
            instructor=row["instructor"],
            regional=row["regional"],
            titulo=row["titulo"],
            detalles=_split_details(row.get("detalles", "")),
            ubicacion=row.get("ubicacion") or DEFAULT_LOCATION,
            dia=normalize_weekday(dia),
            hora_inicio=row.get("horaInicio", ""),
            hora_fin=row.get("horaFin", ""),
            modalidad=_parse_modality(row.get("modalidad", "")),
        ))

    if errors:
        log.info("Import batch rejected: %d error(s) across %d row(s)", len(errors), len(rows))

    return ValidationResult(
        valid=not errors,
        errors=errors,
        valid_rows=validated if not errors else [],
    )
