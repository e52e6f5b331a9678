from __future__ import annotations
import os
from typing import Optional

import httpx

from .argos import ArgosTranslator
from .base import Translator
from .mymemory import DEFAULT_API_URL, MyMemoryTranslator
from .stub import StubTranslator

def get_translator(
    provider: str | None = None,
    *,
    api_url: str = DEFAULT_API_URL,
    transport: Optional[httpx.BaseTransport] = None,
) -> Translator:
    provider = (provider or os.getenv("VOICESUB_TRANSLATOR", "mymemory")).lower().strip()

    if provider == "mymemory":
        return MyMemoryTranslator(api_url=api_url, transport=transport)
    if provider == "argos":
        return ArgosTranslator()
    if provider == "stub":
        return StubTranslator()

    raise ValueError(f"Unknown translator provider: {provider}")
