import io
from pathlib import Path
from typing import IO, Any, Dict, List, Union

import pandas as pd

from exceptions.custom_errors import ImportValidationError
from models.schemas import Instructor, RowError, ValidationResult

TEMPLATE_COLUMNS = [
    "Instructor", "Regional", "Titulo", "Detalles", "Ubicacion",
    "Dia", "Hora Inicio", "Hora Fin", "Modalidad",
]

TEMPLATE_EXAMPLES = [
    {
        "Instructor": "JUAN PABLO HERNANDEZ", "Regional": "BUCARAMANGA",
        "Titulo": "ESCUELA DE PROMOTORES", "Detalles": "Módulo Protagonistas del Servicio",
        "Ubicacion": "Bucaramanga", "Dia": "lunes",
        "Hora Inicio": "8:00 a.m.", "Hora Fin": "5:00 p.m.", "Modalidad": "Presencial",
    },
    {
        "Instructor": "ZULAY VERA", "Regional": "NORTE",
        "Titulo": "INDUSTRIA LIMPIA", "Detalles": "Módulo Formativo Líquidos",
        "Ubicacion": "Cúcuta", "Dia": "martes",
        "Hora Inicio": "9:00 a.m.", "Hora Fin": "4:00 p.m.", "Modalidad": "Virtual",
    },
]


def load_event_rows(path_or_buffer: Union[str, Path, bytes, IO]) -> List[Dict[str, Any]]:
    """
    Read the first sheet of an import workbook into plain row dicts.

    Blank cells become None; column names are kept as written, the
    validator normalizes them. An unreadable file is reported as a
    single row-0 validation error.
    """
    if isinstance(path_or_buffer, bytes):
        path_or_buffer = io.BytesIO(path_or_buffer)

    try:
        df = pd.read_excel(path_or_buffer, sheet_name=0, dtype=object)
    except Exception as e:
        raise ImportValidationError(ValidationResult(
            valid=False,
            errors=[RowError(row=0, field="file", message=f"No se pudo leer el archivo Excel: {e}")],
        )) from e

    df = df.dropna(how="all")
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


def build_template(instructors: List[Instructor]) -> io.BytesIO:
    """Workbook with a 'Plantilla' sheet of example rows and the current instructor roster."""
    buffer = io.BytesIO()
    template_df = pd.DataFrame(TEMPLATE_EXAMPLES, columns=TEMPLATE_COLUMNS)
    roster_df = pd.DataFrame(
        [{"Instructor": i.name, "Regional": i.regional} for i in instructors],
        columns=["Instructor", "Regional"],
    )

    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        template_df.to_excel(writer, sheet_name="Plantilla", index=False)
        roster_df.to_excel(writer, sheet_name="Instructores", index=False)

    buffer.seek(0)
    return buffer
