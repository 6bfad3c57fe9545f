"""Prompt templates and output schema for exam generation."""
from __future__ import annotations

from gsi_trainer.models import BLOCKS, MOCK_BLOCK, OPTION_KEYS, get_block

SYSTEM_INSTRUCTION = """\
Eres un preparador experto de la oposición de Gestión de Sistemas e Informática (A2) \
de la AGE. Debes generar preguntas con el rigor de la CPS (Comisión Permanente de Selección).

REFERENCIAS DE ESTILO Y CONTENIDO:
- Estilo de los exámenes oficiales de la CPS y de los análisis publicados de convocatorias anteriores.
- Normativa y criterios técnicos de las guías CCN-STIC, el Esquema Nacional de Seguridad (2022), \
el Centro de Transferencia de Tecnología de la AGE y el ENS navegable.

DETALLE DEL TEMARIO:
- BLOQUE I: Constitución (1978), Cortes, Gobierno, Transparencia (Ley 19/2013), Igualdad/LGTBI, \
Agenda Digital, eIDAS, Protección de Datos (RGPD/LOPDGDD), LPAC (39/2015), LRJSP (40/2015), \
TREBEP, ENS, ENI.
- BLOQUE II: Arquitecturas (Móvil a Supercomputación), Cloud, SO (Windows, Linux, Móvil), \
Lenguajes y paradigmas, BI (OLTP/OLAP), SQL/ANSI-SPARC, Microservicios/Contenedores, OSI/TCP-IP, \
HTML/XML/Scripting, Riesgos (Magerit), Auditoría, CRM/IVR, Ciberseguridad/Forense, Licencias, \
Gestión Proyectos, CMS/SEO.
- BLOQUE III: Ciclo de vida, Metodologías ágiles, Requisitos, Modelado Datos (Relacional, \
Normalización), IA, DevOps (CI/CD), Testing, Mantenimiento, UML/Patrones, Java/Jakarta EE, .NET, \
Web Front/Back, Calidad (Métricas), Accesibilidad (WCAG/UX), Minería/Big Data (Hadoop/NoSQL).
- BLOQUE IV: Admin SO y BD, Backup/Recuperación, Configuración (ITIL), Almacenamiento \
(SAN/NAS/Virtualización), CPD (Alta Disponibilidad/BCDR), Medios Transmisión, LAN \
(Seguridad/Normativa), Gestión Red (SNMP), WAN (MPLS/SD-WAN), Wireless, Seguridad Perimetral/VPN, \
Internet/IoT, NGN/VoIP, Telefonía Móvil (MDM), Videoconferencia.

NORMAS CRÍTICAS:
1. CANTIDAD: Genera EXACTAMENTE el número de preguntas pedido. NI UNA MÁS, NI UNA MENOS.
2. ALEATORIEDAD DE RESPUESTA: Distribuye equitativamente la respuesta correcta entre 'a', 'b', \
'c' y 'd'. Evita cualquier sesgo (no abuses de la opción 'b').
3. PRECISIÓN: Preguntas de nivel A2, conceptuales y de aplicación técnica/normativa.
4. JUSTIFICACIÓN: Incluye siempre por qué la respuesta es correcta citando la ley o estándar \
(p.ej. "Según el Art. 13 del ENS...").
5. FORMATO: JSON estricto. Responde únicamente con un array JSON, sin texto adicional.
"""

BLOCK_PROMPT = """\
Genera {count} preguntas de examen tipo test para el {block_name} ({block_id}) siguiendo \
estrictamente el temario oficial.

{format_section}"""

MOCK_PROMPT = """\
ACTÚA COMO TRIBUNAL: Genera un SIMULACRO OFICIAL COMPLETO de EXACTAMENTE {count} PREGUNTAS \
respetando la proporción oficial: {distribution}. No te detengas hasta completar las {count} \
preguntas.

{format_section}"""

FORMAT_SECTION = """\
Cada elemento del array debe tener este formato:
{
  "pregunta_id": "1",
  "bloque": "Bloque II",
  "enunciado": "Texto de la pregunta",
  "opciones": {"a": "...", "b": "...", "c": "...", "d": "..."},
  "respuesta_correcta": "a",
  "justificacion": "Por qué es correcta, citando la norma o estándar",
  "dificultad": "baja | media | alta"
}"""

WIRE_FIELDS = (
    "pregunta_id",
    "bloque",
    "enunciado",
    "opciones",
    "respuesta_correcta",
    "justificacion",
    "dificultad",
)

QUESTION_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "pregunta_id": {"type": "string"},
            "bloque": {"type": "string"},
            "enunciado": {"type": "string"},
            "opciones": {
                "type": "object",
                "properties": {k: {"type": "string"} for k in OPTION_KEYS},
                "required": list(OPTION_KEYS),
            },
            "respuesta_correcta": {"type": "string", "enum": list(OPTION_KEYS)},
            "justificacion": {"type": "string"},
            "dificultad": {"type": "string", "enum": ["baja", "media", "alta"]},
        },
        "required": list(WIRE_FIELDS),
    },
}


def format_distribution() -> str:
    """e.g. 'Bloque I (~15%), Bloque II (~25%), ...'"""
    parts = []
    for b in BLOCKS:
        if b.id == MOCK_BLOCK:
            continue
        label = b.name.split(":")[0]
        parts.append(f"{label} (~{round(b.mock_weight * 100)}%)")
    return ", ".join(parts)


def build_prompt(block_id: str, count: int) -> str:
    if block_id == MOCK_BLOCK:
        return MOCK_PROMPT.format(
            count=count,
            distribution=format_distribution(),
            format_section=FORMAT_SECTION,
        )
    block = get_block(block_id)
    if block is None:
        raise ValueError(f"Unknown block: {block_id}")
    return BLOCK_PROMPT.format(
        count=count,
        block_name=block.name,
        block_id=block.id,
        format_section=FORMAT_SECTION,
    )
