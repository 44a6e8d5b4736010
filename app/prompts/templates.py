"""System prompt and fixed user-facing texts for the forum assistant.

Contains:
- SYSTEM_PROMPT: Persona sent with every model call (Spanish, concise)
- DEGRADED_RESPONSE: Reply used when no model API key is configured
- FALLBACK_REPLY: Reply used when the model returns no usable text
- APOLOGY_RESPONSE: Reply used for any failure after authentication
- QUOTA_EXCEEDED_MESSAGE: Default message when a user runs out of credits

All texts are user-facing and stay in Spanish, the forum's language.
"""
from __future__ import annotations


# ══════════════════════════════════════════════════════════════════════
# System Prompt
# ══════════════════════════════════════════════════════════════════════

SYSTEM_PROMPT = """Eres un asistente virtual experto en cómics, manga y arte. Tu trabajo es ayudar a los usuarios con información relevante sobre estos temas.

Responde de manera amigable, concisa y útil. Si no tienes información específica, sugiere alternativas o recursos donde pueden encontrar más información.

Algunos temas que puedes abordar:
- Recomendaciones de cómics, manga o arte
- Información sobre lanzamientos recientes o próximos
- Historia y contexto de series populares
- Estilos artísticos y técnicas
- Comparaciones entre obras similares

Mantén tus respuestas en español y con un tono cercano y entusiasta."""


# ══════════════════════════════════════════════════════════════════════
# Fixed replies
# ══════════════════════════════════════════════════════════════════════

DEGRADED_RESPONSE = (
    "Gracias por tu pregunta. En este momento el servicio de IA no está configurado. "
    "Te recomendaría explorar nuestro foro donde la comunidad comparte excelentes "
    "recomendaciones sobre cómics, manga y arte. ¡También puedes publicar tu pregunta allí!"
)

FALLBACK_REPLY = "Lo siento, no pude generar una respuesta."

APOLOGY_RESPONSE = (
    "Lo siento, ocurrió un error al procesar tu mensaje. "
    "Por favor, intenta de nuevo más tarde."
)

QUOTA_EXCEEDED_MESSAGE = (
    "Has alcanzado el límite de mensajes. Tus créditos se restablecen cada 24 horas."
)
