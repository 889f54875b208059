"""Prompt assembly helpers for blueprint analysis and architecture chat.

This module is intentionally narrow: it only holds the fixed instruction texts and
builds prompt strings from already validated inputs. Validation, transport and
model invocation happen outside this module.

Design constraints:
    - Deterministic construction for identical inputs.
    - No hidden side effects (no I/O, no global state mutation).
"""


# =========================================================
# BLUEPRINT ANALYSIS
# =========================================================
# Default instruction shown (and editable) in the analyzer. It asks for a
# risk-averse review split into four Markdown sections plus a disclaimer.

DEFAULT_ANALYSIS_PROMPT = (
    "Actúa como un ingeniero estructural y arquitecto senior extremadamente riguroso "
    "y con aversión al riesgo. Tu principal prioridad es la seguridad, el cumplimiento "
    "de los códigos de construcción más estrictos y la viabilidad a largo plazo del "
    "proyecto. No hagas suposiciones optimistas. Señala cada posible problema, por "
    "pequeño que parezca. Analiza el plano proporcionado y estructura tu respuesta en "
    "las siguientes secciones usando formato Markdown:\n\n"
    "### 1. Análisis Estructural y de Seguridad (Prioridad Máxima)\n"
    "- Evalúa la integridad de los elementos de carga, vanos, cimientos y conexiones "
    "estructurales.\n"
    "- Identifica posibles puntos de fallo, concentraciones de estrés o debilidades de "
    "diseño.\n"
    "- Analiza las medidas de seguridad contra incendios, rutas de evacuación y "
    "resistencia sísmica según los estándares generales.\n\n"
    "### 2. Cumplimiento Normativo y de Códigos\n"
    "- Realiza una revisión preliminar basada en estándares internacionales comunes "
    "(ej. IBC, ADA). Menciona explícitamente que los códigos locales deben ser "
    "verificados.\n"
    "- Señala cualquier desviación potencial en accesibilidad, ventilación, "
    "iluminación y ratios de ocupación.\n\n"
    "### 3. Materiales, Durabilidad y Mantenimiento\n"
    "- Recomienda materiales basándote en su durabilidad, resistencia, longevidad y "
    "requisitos de mantenimiento. Considera las condiciones ambientales.\n"
    "- Advierte sobre materiales o técnicas de construcción que puedan presentar "
    "riesgos a largo plazo.\n\n"
    "### 4. Resumen de Riesgos Críticos\n"
    "- Enumera en una lista los 3-5 riesgos más críticos identificados que requieren "
    "atención inmediata por parte de un profesional.\n\n"
    "---\n\n"
    "**NOTA IMPORTANTE:** Este análisis es generado por IA y debe ser considerado "
    "únicamente como una herramienta de apoyo preliminar. NO REEMPLAZA la revisión, "
    "juicio y aprobación de un ingeniero o arquitecto humano certificado. Todas las "
    "observaciones y recomendaciones deben ser verificadas de forma independiente por "
    "un profesional cualificado antes de su implementación."
)

MULTI_PAGE_PREAMBLE = (
    "Vas a recibir varias páginas de un plano arquitectónico. Analiza cada página "
    "individualmente y proporciona un informe consolidado. Estructura tu respuesta con "
    "un encabezado principal para cada página (ej. '### Análisis de la Página 1'). "
    "Luego, para cada página, sigue las siguientes instrucciones del usuario:"
)


def build_multi_page_prompt(prompt: str) -> str:
    """Wrap the user's instruction with the per-page sectioning preamble.

    Args:
        prompt: Analysis instruction as entered by the user.

    Returns:
        Preamble, a horizontal rule, then the unchanged instruction.
    """
    return f"{MULTI_PAGE_PREAMBLE}\n\n---\n\n{prompt}"


def page_label(page_number: int) -> str:
    """Return the text part that precedes page `page_number` in multi-image requests."""
    return f"Página {page_number}:"


# =========================================================
# ARCHITECTURE CHAT
# =========================================================

CHAT_SYSTEM_INSTRUCTION = (
    "Eres Arqui-IA, un asistente experto en arquitectura. Respondes preguntas sobre "
    "códigos de construcción, principios de diseño, ciencia de materiales, historia "
    "de la arquitectura y práctica profesional. Responde de forma clara y precisa, "
    "usa formato Markdown cuando ayude a la lectura y recuerda que tus respuestas no "
    "sustituyen la revisión de un profesional certificado."
)

CHAT_GREETING = (
    "¡Hola! Soy Arqui-IA. ¿Cómo puedo ayudarte con tus preguntas de arquitectura hoy? "
    "No dudes en preguntar sobre códigos de construcción, principios de diseño, "
    "ciencia de materiales o cualquier otra cosa."
)


# =========================================================
# CONCEPT GENERATION
# =========================================================

DEFAULT_CONCEPT_PROMPT = (
    "Una villa moderna y minimalista en las colinas de Hollywood, con una piscina "
    "infinita con vistas a la ciudad."
)
