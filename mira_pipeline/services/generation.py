"""
Reply generation for the wellness coach persona.
"""

import logging
from typing import Optional

from ..languages import LanguageCode
from ..models import ConversationContext, IntentAnalysis
from .capabilities import TranslationCapability

logger = logging.getLogger(__name__)


def safe_reply(crisis_hotline: str) -> str:
    """Fixed reply used whenever generation cannot produce one."""
    return (
        "I'm here to support you. I'm having a technical issue right now, but your "
        f"wellbeing matters. If you're in crisis, please reach out to {crisis_hotline}."
    )


class ReplyGenerator:
    """Builds the coach prompt and asks the capability for a reply.

    Raises on capability failure; the orchestrator owns the fallback.
    """

    def __init__(self, capability: TranslationCapability, crisis_hotline: str):
        self.capability = capability
        self.crisis_hotline = crisis_hotline

    @property
    def fallback_reply(self) -> str:
        return safe_reply(self.crisis_hotline)

    def build_prompt(
        self,
        text: str,
        analysis: IntentAnalysis,
        context: ConversationContext,
        user_language: LanguageCode,
        pivot_language: LanguageCode,
    ) -> str:
        lines = [
            "You are Mira, an empathetic AI mental wellness coach for Indian youth.",
            "",
            "User Context:",
            f"- Language: {user_language.display_name}",
            *context.as_prompt_lines(),
            f"- Detected emotion: {analysis.emotion}",
            f"- Intent: {analysis.intent}",
            f"- Urgency: {analysis.urgency}",
            "",
            "Guidelines:",
            "- Be warm, empathetic, culturally sensitive to Indian context",
            "- Use evidence-based CBT techniques",
            "- Keep responses concise (2-3 sentences)",
            "- Suggest specific exercises when appropriate",
            "- If urgency is high/critical, prioritize immediate coping strategies",
            "- Acknowledge academic/social pressures common in India",
        ]
        if analysis.is_urgent:
            lines += [
                "",
                "HIGH URGENCY: Provide immediate support, grounding techniques, and crisis resources. "
                f"Mention {self.crisis_hotline}.",
            ]
        lines += [
            "",
            f'User message (in {pivot_language.display_name}): "{text}"',
            "",
            f"Your empathetic response in {pivot_language.display_name}:",
        ]
        return "\n".join(lines)

    async def generate(
        self,
        text: str,
        analysis: IntentAnalysis,
        context: Optional[ConversationContext],
        user_language: LanguageCode,
        pivot_language: LanguageCode,
    ) -> str:
        context = context or ConversationContext()
        prompt = self.build_prompt(text, analysis, context, user_language, pivot_language)
        if analysis.is_urgent:
            logger.info(f"Urgency {analysis.urgency}: using urgent reply model")
        return await self.capability.generate_reply(
            prompt,
            {"task": "reply", "urgent": analysis.is_urgent, "language": pivot_language.value},
        )
