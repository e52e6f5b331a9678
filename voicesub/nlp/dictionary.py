from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from voicesub.nlp.translator.retrying import RetryingTranslator

DEFAULT_DICTIONARY_URL = "https://api.dictionaryapi.dev/api/v2/entries/en/"
MAX_MATCHES = 8
MAX_MEANINGS = 3
MAX_EXAMPLES_PER_MEANING = 2
MAX_SYNONYMS = 5

logger = logging.getLogger(__name__)


@dataclass
class DictEntry:
    word: str
    translation: str
    part_of_speech: Optional[str] = None
    examples: List[str] = field(default_factory=list)
    synonyms: List[str] = field(default_factory=list)
    phonetic: Optional[str] = None


@dataclass(frozen=True)
class DictResult:
    entries: List[DictEntry]
    source_lang: str
    target_lang: str


class WordLookup:
    """
    Translate a word or phrase and list distinct alternative translations.
    Single English words (or auto-detected source) are enriched with
    phonetics, examples and synonyms; that enrichment never fails a lookup.
    """

    def __init__(
        self,
        translator: RetryingTranslator,
        *,
        dictionary_url: str = DEFAULT_DICTIONARY_URL,
        transport: Optional[httpx.BaseTransport] = None,
        max_matches: int = MAX_MATCHES,
    ) -> None:
        self.translator = translator
        self.dictionary_url = dictionary_url
        self.max_matches = max_matches
        self._transport = transport

    def lookup(self, word: str, source_lang: str, target_lang: str) -> Optional[DictResult]:
        word = (word or "").strip()
        if not word:
            return None

        result = self.translator.translate_result(word, source_lang, target_lang)
        main = DictEntry(word=word, translation=result.translated_text, part_of_speech="translation")
        entries = [main]

        seen = {result.translated_text.lower()}
        for match in result.matches[: self.max_matches]:
            trans = match.translation.strip()
            if not trans or trans.lower() in seen or trans.lower() == word.lower():
                continue
            seen.add(trans.lower())
            entries.append(
                DictEntry(
                    word=match.segment or word,
                    translation=trans,
                    part_of_speech=f"quality: {round(match.quality)}%" if match.quality else None,
                )
            )

        if source_lang in ("en", "auto") and len(word.split()) == 1:
            self._enrich(main)
        return DictResult(entries=entries, source_lang=source_lang, target_lang=target_lang)

    def _enrich(self, entry: DictEntry) -> None:
        try:
            with httpx.Client(transport=self._transport) as client:
                response = client.get(self.dictionary_url + quote(entry.word))
            if not response.is_success:
                return
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("dictionary_lookup_failed", extra={"word": entry.word, "error": str(e)})
            return
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            return
        _apply_dictionary_entry(entry, payload[0])


def _apply_dictionary_entry(entry: DictEntry, first: dict[str, Any]) -> None:
    if first.get("phonetic"):
        entry.phonetic = str(first["phonetic"])
    meanings = first.get("meanings")
    if not isinstance(meanings, list):
        return
    for meaning in meanings[:MAX_MEANINGS]:
        if not isinstance(meaning, dict):
            continue
        definitions = meaning.get("definitions") or []
        examples = [
            str(d["example"])
            for d in definitions[:MAX_EXAMPLES_PER_MEANING]
            if isinstance(d, dict) and d.get("example")
        ]
        synonyms = [str(s) for s in (meaning.get("synonyms") or [])[:MAX_SYNONYMS]]
        if examples:
            entry.examples = examples
        if synonyms:
            entry.synonyms = synonyms
