from __future__ import annotations
from abc import ABC, abstractmethod
from voicesub.contracts import TranslationRequest, TranslationResult

class Translator(ABC):
    """
    One translation backend. translate() makes a single attempt and raises
    TranslationBackendError on any failure; retrying is the caller's job.
    """
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def translate(self, req: TranslationRequest) -> TranslationResult: ...
