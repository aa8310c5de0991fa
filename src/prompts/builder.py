# src/prompts/builder.py — v1
"""Prompt construction for extraction and JSON repair calls.

``build_prompt`` is a pure function of (mode, language). Every mode
answers with the same JSON schema; they differ in role, structure rules
and tone. Repair prompts ask the model to re-emit a malformed answer as
valid JSON, either in full or in a compact form.
"""

from __future__ import annotations

from dataclasses import dataclass

from actionextractor.core.models import DIFFICULTY_LABELS, ExtractionMode
from actionextractor.llm.models import Prompt

CONTENT_PLACEHOLDER = "{content}"

COMPACT_MAX_PHASES = 5
COMPACT_MAX_ITEMS = 4
COMPACT_MAX_WORDS = 18


@dataclass(frozen=True)
class _ModeText:
    role: str
    rules: tuple[str, ...]
    phase_title: str
    item_example: str
    objective_hint: str
    pro_tip_hint: str


_MODES: dict[str, dict[ExtractionMode, _ModeText]] = {
    "es": {
        ExtractionMode.ACTION_PLAN: _ModeText(
            role=(
                "Eres un estratega de negocios experto. Analizas contenido y extraes "
                "ÚNICAMENTE las acciones concretas y ejecutables, eliminando relleno, "
                "anécdotas y motivación genérica."
            ),
            rules=(
                "Cada acción es específica, medible y empieza con un verbo de acción "
                "(Define, Crea, Identifica, Implementa, Establece, Documenta...).",
                "Elimina anécdotas, motivación y consejos vagos.",
                "Genera entre 4 y 6 fases, cada una con 3 a 5 items.",
                "El consejo pro es la táctica más contraintuitiva o menos obvia del contenido.",
            ),
            phase_title="Fase 1: Nombre descriptivo",
            item_example="Acción específica",
            objective_hint="Objetivo central del contenido en 1-2 oraciones",
            pro_tip_hint="La táctica más específica y contraintuitiva del contenido",
        ),
        ExtractionMode.EXECUTIVE_SUMMARY: _ModeText(
            role=(
                "Eres un analista ejecutivo. Resumes contenido para que un directivo "
                "pueda decidir en minutos."
            ),
            rules=(
                "Cada fase es un bloque temático: contexto, hallazgos clave, riesgos, "
                "oportunidades y decisiones recomendadas.",
                "Genera entre 4 y 6 bloques, cada uno con 3 a 5 ideas.",
                "Cada idea es una frase breve, factual y sin adornos.",
                "El consejo pro es la decisión o implicación más importante.",
            ),
            phase_title="Hallazgos clave",
            item_example="Idea clave concreta",
            objective_hint="Conclusión principal del contenido en 1-2 oraciones",
            pro_tip_hint="La decisión o implicación más importante",
        ),
        ExtractionMode.BUSINESS_IDEAS: _ModeText(
            role=(
                "Eres un emprendedor serial y analista de mercado. Detectas oportunidades "
                "de negocio en el contenido."
            ),
            rules=(
                "Cada fase es una idea de negocio distinta con un título que la nombre.",
                "Los items cubren: problema que resuelve, cliente objetivo, modelo de "
                "monetización y primer paso de validación.",
                "Genera entre 4 y 6 ideas, cada una con 3 a 5 items.",
                "El consejo pro es la oportunidad con mejor relación esfuerzo/retorno.",
            ),
            phase_title="Idea 1: Nombre de la oportunidad",
            item_example="Problema, cliente, monetización o validación",
            objective_hint="Tipo de oportunidades que ofrece el contenido en 1-2 oraciones",
            pro_tip_hint="La oportunidad con mejor relación esfuerzo/retorno",
        ),
        ExtractionMode.KEY_QUOTES: _ModeText(
            role=(
                "Eres un editor que selecciona las frases más valiosas de un contenido "
                "y explica cómo aplicarlas."
            ),
            rules=(
                "Cada fase agrupa citas por tema.",
                "Cada item es una cita textual entre comillas seguida de su aplicación práctica.",
                "No inventes citas: usa solo frases presentes en el contenido.",
                "Genera entre 4 y 6 temas, cada uno con 3 a 5 citas.",
            ),
            phase_title="Tema 1: Nombre del tema",
            item_example="\\\"Cita textual\\\" - cómo aplicarla",
            objective_hint="Mensaje central que conectan las citas en 1-2 oraciones",
            pro_tip_hint="La cita más poderosa y por qué",
        ),
        ExtractionMode.CONCEPT_MAP: _ModeText(
            role=(
                "Eres un profesor que organiza conocimiento en mapas conceptuales claros."
            ),
            rules=(
                "Cada fase es un concepto principal; sus items son subconceptos, "
                "definiciones o relaciones con otros conceptos.",
                "Ordena las fases de lo fundamental a lo avanzado.",
                "Genera entre 4 y 6 conceptos, cada uno con 3 a 5 items.",
                "El consejo pro es la conexión entre conceptos menos evidente.",
            ),
            phase_title="Concepto 1: Nombre del concepto",
            item_example="Subconcepto o relación",
            objective_hint="Idea que articula todo el mapa en 1-2 oraciones",
            pro_tip_hint="La conexión entre conceptos menos evidente",
        ),
    },
    "en": {
        ExtractionMode.ACTION_PLAN: _ModeText(
            role=(
                "You are an expert business strategist. You analyze content and extract "
                "ONLY concrete, executable actions, removing filler, anecdotes and "
                "generic motivation."
            ),
            rules=(
                "Every action is specific, measurable and starts with an action verb "
                "(Define, Create, Identify, Implement, Set up, Document...).",
                "Remove anecdotes, motivation and vague advice.",
                "Produce 4 to 6 phases, each with 3 to 5 items.",
                "The pro tip is the most counterintuitive or least obvious tactic in the content.",
            ),
            phase_title="Phase 1: Descriptive name",
            item_example="Specific action",
            objective_hint="Core goal of the content in 1-2 sentences",
            pro_tip_hint="The most specific, counterintuitive tactic in the content",
        ),
        ExtractionMode.EXECUTIVE_SUMMARY: _ModeText(
            role=(
                "You are an executive analyst. You summarize content so a decision "
                "maker can act within minutes."
            ),
            rules=(
                "Each phase is a thematic block: context, key findings, risks, "
                "opportunities and recommended decisions.",
                "Produce 4 to 6 blocks, each with 3 to 5 points.",
                "Each point is a short, factual sentence.",
                "The pro tip is the single most important decision or implication.",
            ),
            phase_title="Key findings",
            item_example="Concrete key point",
            objective_hint="Main conclusion of the content in 1-2 sentences",
            pro_tip_hint="The most important decision or implication",
        ),
        ExtractionMode.BUSINESS_IDEAS: _ModeText(
            role=(
                "You are a serial entrepreneur and market analyst. You spot business "
                "opportunities in content."
            ),
            rules=(
                "Each phase is a distinct business idea with a title naming it.",
                "Items cover: problem solved, target customer, monetization model and "
                "first validation step.",
                "Produce 4 to 6 ideas, each with 3 to 5 items.",
                "The pro tip is the opportunity with the best effort/return ratio.",
            ),
            phase_title="Idea 1: Opportunity name",
            item_example="Problem, customer, monetization or validation",
            objective_hint="Kind of opportunities the content offers in 1-2 sentences",
            pro_tip_hint="The opportunity with the best effort/return ratio",
        ),
        ExtractionMode.KEY_QUOTES: _ModeText(
            role=(
                "You are an editor who selects the most valuable lines of a piece of "
                "content and explains how to apply them."
            ),
            rules=(
                "Each phase groups quotes by theme.",
                "Each item is a verbatim quote in quotation marks followed by its practical use.",
                "Never invent quotes: only use sentences present in the content.",
                "Produce 4 to 6 themes, each with 3 to 5 quotes.",
            ),
            phase_title="Theme 1: Theme name",
            item_example="\\\"Verbatim quote\\\" - how to apply it",
            objective_hint="Central message tying the quotes together in 1-2 sentences",
            pro_tip_hint="The most powerful quote and why",
        ),
        ExtractionMode.CONCEPT_MAP: _ModeText(
            role="You are an educator who organizes knowledge into clear concept maps.",
            rules=(
                "Each phase is a main concept; its items are sub-concepts, definitions "
                "or relations to other concepts.",
                "Order phases from fundamental to advanced.",
                "Produce 4 to 6 concepts, each with 3 to 5 items.",
                "The pro tip is the least obvious connection between concepts.",
            ),
            phase_title="Concept 1: Concept name",
            item_example="Sub-concept or relation",
            objective_hint="Idea that ties the whole map together in 1-2 sentences",
            pro_tip_hint="The least obvious connection between concepts",
        ),
    },
}

_LABELS = {
    "es": {
        "rules": "REGLAS ESTRICTAS:",
        "difficulty": "La dificultad refleja recursos y habilidades requeridas: {labels}.",
        "language": "Responde siempre en español.",
        "instruction": (
            "Analiza el contenido y responde ÚNICAMENTE con un JSON válido con esta "
            "estructura exacta (sin markdown, sin texto adicional):"
        ),
        "content": "CONTENIDO:",
    },
    "en": {
        "rules": "STRICT RULES:",
        "difficulty": "Difficulty reflects the resources and skills required: {labels}.",
        "language": "Always answer in English.",
        "instruction": (
            "Analyze the content and answer ONLY with valid JSON using exactly this "
            "structure (no markdown, no extra text):"
        ),
        "content": "CONTENT:",
    },
}

_SCHEMA_TEMPLATE = """{{
  "objective": "{objective}",
  "phases": [
    {{
      "id": 1,
      "title": "{phase_title}",
      "items": ["{item} 1", "{item} 2", "{item} 3"]
    }}
  ],
  "proTip": "{pro_tip}",
  "metadata": {{
    "difficulty": "{difficulty}",
    "readingTime": "3 min"
  }}
}}"""


@dataclass(frozen=True)
class PromptTemplate:
    """System prompt plus a user template with a ``{content}`` slot."""

    mode: ExtractionMode
    language: str
    system: str
    user_template: str

    def render(self, content: str) -> Prompt:
        return Prompt(
            system=self.system,
            user=self.user_template.replace(CONTENT_PLACEHOLDER, content),
        )


def _normalize_language(language: str) -> str:
    return language if language in _MODES else "es"


def _schema(mode_text: _ModeText, language: str) -> str:
    return _SCHEMA_TEMPLATE.format(
        objective=mode_text.objective_hint,
        phase_title=mode_text.phase_title,
        item=mode_text.item_example,
        pro_tip=mode_text.pro_tip_hint,
        difficulty=DIFFICULTY_LABELS[language][1],
    )


def build_prompt(mode: ExtractionMode | str, language: str) -> PromptTemplate:
    """Build the extraction prompt for ``mode`` in ``language`` ("es" or "en")."""
    mode = ExtractionMode(mode)
    language = _normalize_language(language)
    mode_text = _MODES[language][mode]
    labels = _LABELS[language]

    difficulty = labels["difficulty"].format(
        labels=", ".join(f'"{label}"' for label in DIFFICULTY_LABELS[language]),
    )
    rules = "\n".join(f"- {rule}" for rule in (*mode_text.rules, difficulty, labels["language"]))
    system = f"{mode_text.role}\n\n{labels['rules']}\n{rules}"

    user_template = (
        f"{labels['instruction']}\n\n{_schema(mode_text, language)}\n\n"
        f"{labels['content']}\n{CONTENT_PLACEHOLDER}"
    )
    return PromptTemplate(mode=mode, language=language, system=system, user_template=user_template)


_REPAIR_SYSTEM = {
    "es": (
        "Eres un formateador de JSON estricto. Conviertes respuestas mal formadas en "
        "JSON válido sin inventar contenido."
    ),
    "en": (
        "You are a strict JSON formatter. You turn malformed answers into valid JSON "
        "without inventing content."
    ),
}

_REPAIR_INSTRUCTIONS = {
    "es": {
        "full": (
            "La siguiente respuesta debía ser un JSON con las claves objective, phases "
            "(lista de {id, title, items}), proTip y metadata {difficulty, readingTime}. "
            "Corrígela y devuelve ÚNICAMENTE el JSON válido, conservando todo su contenido."
        ),
        "compact": (
            "La siguiente respuesta debía ser un JSON con las claves objective, phases "
            "(lista de {id, title, items}), proTip y metadata {difficulty, readingTime}. "
            "Devuelve ÚNICAMENTE un JSON válido y compacto: máximo {phases} fases, máximo "
            "{items} items por fase y máximo {words} palabras por item."
        ),
        "answer": "RESPUESTA A CORREGIR:",
    },
    "en": {
        "full": (
            "The following answer was supposed to be JSON with the keys objective, phases "
            "(list of {id, title, items}), proTip and metadata {difficulty, readingTime}. "
            "Fix it and return ONLY the valid JSON, keeping all of its content."
        ),
        "compact": (
            "The following answer was supposed to be JSON with the keys objective, phases "
            "(list of {id, title, items}), proTip and metadata {difficulty, readingTime}. "
            "Return ONLY valid, compact JSON: at most {phases} phases, at most {items} "
            "items per phase and at most {words} words per item."
        ),
        "answer": "ANSWER TO FIX:",
    },
}


def build_repair_prompt(raw_text: str, language: str, compact: bool = False) -> Prompt:
    """Prompt asking the model to re-emit ``raw_text`` as valid JSON.

    Args:
        raw_text: The unparseable model answer.
        language: Output language of the original answer.
        compact: Ask for a bounded, shortened payload instead of a faithful fix.
    """
    language = _normalize_language(language)
    texts = _REPAIR_INSTRUCTIONS[language]
    if compact:
        instruction = (
            texts["compact"]
            .replace("{phases}", str(COMPACT_MAX_PHASES))
            .replace("{items}", str(COMPACT_MAX_ITEMS))
            .replace("{words}", str(COMPACT_MAX_WORDS))
        )
    else:
        instruction = texts["full"]
    return Prompt(
        system=_REPAIR_SYSTEM[language],
        user=f"{instruction}\n\n{texts['answer']}\n{raw_text}",
    )
