# Schemas package
from .safety_schema import HarmBlockThreshold, HarmCategory, SafetySetting

__all__ = [
    "HarmBlockThreshold",
    "HarmCategory",
    "SafetySetting",
]
