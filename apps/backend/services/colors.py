"""
Event color palette and detail -> color lookup.

Known details always map to the same color; anything else gets a random
palette member.
"""
import random
import re
import unicodedata
from typing import Dict, List, Optional, Union

EVENT_COLORS = [
    '#34b45c', '#d42639', '#6cb444', '#b41c4c', '#ec449c', '#44449c', '#f464a4', '#23a6c4',
    '#7cc444', '#945ca4', '#93c743', '#b41c5c', '#34a4dc', '#f8945c', '#d69833', '#906cac',
    '#acd46c', '#f4ec47', '#f16f2e', '#f46780', '#43c7ec', '#ec342c', '#74c48c', '#544c9c',
    '#ec4c3b', '#5fbc6b', '#3c4c9c', '#5e56a6', '#dccc34', '#63c6bb', '#14b493', '#1cc4f4',
    '#43b3e7', '#88509c', '#1783b0', '#1c449c', '#54c4bc', '#ec2473', '#34bc94', '#dc146c',
    '#84449c', '#74c4b4', '#2c60ac', '#485ba7', '#5cc49c', '#cc6424', '#44bc64', '#5c84c4',
    '#f4f46c', '#ec447c', '#1c50a4', '#1c5ca4', '#3c6cb4', '#3454a4', '#3cb840', '#dcd4b4',
    '#9898d0', '#4c2ccc', '#ff0818', '#f3ffff', '#ffe500', '#fdb913', '#b50000', '#7c0000',
    '#edf9f9', '#c9d6d7', '#a9bbbd', '#638287', '#46646b', '#1a3a42',
]

DETAIL_COLORS = {
    # Módulos formativos
    'Módulo Protagonistas del Servicio': '#b01a4e',
    'Módulo Formativo GNV': '#9bcb48',
    'Módulo Formativo Líquidos': '#f7f06d',
    'Módulo Formativo Lubricantes': '#1ac0f2',
    'Módulo Escuela de Industria': '#e96f24',
    # Protocolos y gestión
    'Protocolo de Servicio EDS': '#ff0818',
    'Gestión Ambiental, Seguridad y Salud en el Trabajo': '#e96f24',
    'Acompañamiento': '#edf9f9',
    # Programas VIVE
    'La Toma Vive Terpel & Vive PITS': '#1f4299',
    'Caravana Rumbo PITS': '#bda42f',
    # Formación POS, facturación y productos
    'Formación Inicial Terpel POS Operativo': '#68b645',
    'Formación Inicial Terpel POS Administrativo': '#68b645',
    'Entrenamiento Terpel POS Operativo': '#68b645',
    'Entrenamiento Terpel POS Administrativo': '#68b645',
    'Facturación Electrónica Operativa': '#68b645',
    'Facturación Electrónica Administrativa': '#68b645',
    'Canastilla': '#68b645',
    'Clientes Propios Administrativo': '#68b645',
    'App Terpel': '#68b645',
    'Masterlub Operativo': '#68b645',
    'Masterlub Administrativo': '#68b645',
    # EDS
    'EDS Confiable': '#12b19f',
    'Taller EDS Confiable': '#12b19f',
    'Campo de Entrenamiento de Industria Limpia': '#74c48c',
    'Excelencia Administrativa': '#638287',
    'Construyendo Equipos Altamente Efectivos': '#638287',
    # Tienda
    'Módulo Rollos': '#f8945c',
    'Módulo Historia y Masa': '#f8945c',
    'Módulo Strombolis': '#f8945c',
    'Módulo Perros y Más Perros': '#f8945c',
    'Módulo Sánduches': '#f8945c',
    'Módulo Sbarro': '#f8945c',
    'Módulo Bebidas Calientes': '#f8945c',
    'Entrenamiento Tienda': '#f8945c',
    'Seguimiento Apertura': '#f8945c',
    'UDVA P': '#dcd4b4',
    # Administrativo / ausencias
    'Festivo': '#46646b',
    'Gestión Administrativa': '#46646b',
    'Actualización de Contenidos': '#46646b',
    'Vacaciones': '#46646b',
    'Traslado': '#46646b',
    'Preparación de Formación': '#46646b',
    # Módulos de EDS Confiable
    'Módulo Elementos ambientalmente sensibles': '#187ba6',
    'Módulo Control de derrames y atención de emergencias': '#187ba6',
    'Módulo Control de calidad': '#187ba6',
    'Módulo Medida exacta': '#187ba6',
    'Módulo Control de incendios': '#187ba6',
    'Módulo Comportamiento seguro': '#187ba6',
    'Módulo Primeros auxilios': '#187ba6',
    'Módulo Investigación de accidentes': '#187ba6',
    'Bogotá': '#88589b',
    'Barranquilla': '#88589b',
    'Empleados Terpel': '#c48e35',
}


def _detail_key(detail: str) -> str:
    # Import files often use "MODULO FORMATIVO LIQUIDOS" for "Módulo Formativo Líquidos"
    text = unicodedata.normalize("NFKD", detail.strip())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return " ".join(text.casefold().split())


_DETAIL_INDEX = {_detail_key(k): v for k, v in DETAIL_COLORS.items()}


def random_event_color(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(EVENT_COLORS)


def color_for_detail(detail: Union[str, List[str], None], rng: Optional[random.Random] = None) -> str:
    """
    Color for a detail string. Lists use their first line.
    Unknown or empty details get a random palette color.
    """
    if isinstance(detail, list):
        detail = detail[0] if detail else ""
    key = _detail_key(detail or "")
    if key in _DETAIL_INDEX:
        return _DETAIL_INDEX[key]
    return random_event_color(rng)


HEX_COLOR_RE = re.compile(r'^#([0-9a-f]{3}|[0-9a-f]{6})$', re.IGNORECASE)


def is_valid_event_color(color: Optional[str]) -> bool:
    """Hex color in #rgb or #rrggbb form. Palette membership is not required."""
    return bool(HEX_COLOR_RE.match(str(color or "").strip()))


def contrast_text_color(hex_color: str) -> str:
    """Black or white, whichever reads better on the given background. Raises ValueError for non-hex input."""
    if not is_valid_event_color(hex_color):
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    hex_value = hex_color.strip().lstrip("#")
    if len(hex_value) == 3:
        hex_value = "".join(ch * 2 for ch in hex_value)
    r = int(hex_value[0:2], 16)
    g = int(hex_value[2:4], 16)
    b = int(hex_value[4:6], 16)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return "#000000" if luminance > 0.5 else "#ffffff"


def palette() -> List[Dict[str, str]]:
    """Palette colors with the text color to draw on each."""
    return [{"color": c, "text_color": contrast_text_color(c)} for c in EVENT_COLORS]
