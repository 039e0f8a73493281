"""
Supported languages for the multilingual pipeline.
"""

from enum import Enum
from typing import Optional


class LanguageCode(str, Enum):
    """ISO 639-1 codes supported end to end."""

    EN = "en"
    HI = "hi"
    TA = "ta"
    TE = "te"
    BN = "bn"
    MR = "mr"
    GU = "gu"
    KN = "kn"
    ML = "ml"
    PA = "pa"

    @property
    def display_name(self) -> str:
        return LANGUAGE_NAMES[self]

    @classmethod
    def parse(cls, value: Optional[str], default: Optional["LanguageCode"] = None) -> Optional["LanguageCode"]:
        """Parse a loose language tag ("HI", "hi-IN", " ta ") into a supported code.

        Anything unsupported collapses to `default`.
        """
        if isinstance(value, cls):
            return value
        if not value:
            return default
        code = str(value).strip().lower().replace("_", "-").split("-")[0]
        try:
            return cls(code)
        except ValueError:
            return default

    @classmethod
    def codes(cls) -> list[str]:
        return [lang.value for lang in cls]


LANGUAGE_NAMES = {
    LanguageCode.EN: "English",
    LanguageCode.HI: "Hindi",
    LanguageCode.TA: "Tamil",
    LanguageCode.TE: "Telugu",
    LanguageCode.BN: "Bengali",
    LanguageCode.MR: "Marathi",
    LanguageCode.GU: "Gujarati",
    LanguageCode.KN: "Kannada",
    LanguageCode.ML: "Malayalam",
    LanguageCode.PA: "Punjabi",
}
