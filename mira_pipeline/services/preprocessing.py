import json
import logging
import re

from pydantic import ValidationError

from ..languages import LanguageCode
from ..models import IntentAnalysis
from .capabilities import TranslationCapability

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class IntentExtractor:
    """Extract intent, emotion and urgency from a user message.

    Capability failures propagate; the orchestrator substitutes the default
    analysis for a failed branch. Unparseable output yields the default.
    """

    def __init__(self, capability: TranslationCapability):
        self.capability = capability

    async def extract(self, text: str, language: LanguageCode) -> IntentAnalysis:
        prompt = (
            "Analyze this mental health message. Extract:\n"
            "1. Intent: mood_logging, seeking_help, crisis, casual_chat, exercise_request\n"
            "2. Emotion: happy, sad, anxious, stressed, angry, neutral\n"
            "3. Urgency: low, medium, high, critical\n\n"
            f"Language: {language.display_name}\n"
            f'Message: "{text}"\n\n'
            'Respond in JSON format only, e.g. {"intent": "...", "emotion": "...", "urgency": "..."}:'
        )
        response = await self.capability.generate_reply(prompt, {"task": "preprocessing"})
        return self.parse(response)

    @staticmethod
    def parse(response: str) -> IntentAnalysis:
        match = _JSON_OBJECT.search(response or "")
        if not match:
            logger.debug("Preprocessing response had no JSON object; using defaults")
            return IntentAnalysis()
        try:
            data = json.loads(match.group(0))
            if not isinstance(data, dict):
                return IntentAnalysis()
            return IntentAnalysis.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.debug(f"Preprocessing response unparseable ({e}); using defaults")
            return IntentAnalysis()
