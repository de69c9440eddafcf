#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Glossary - term -> translation mappings used to keep terminology consistent
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from config.constants import GLOSSARY_PROMPT_MAX_TERMS
from config.logging_config import get_logger
from .errors import RemoteCallError

logger = get_logger(__name__)

_JSON_FENCE = re.compile(r'^```(?:json)?\s*|\s*```$')


def clean_terms(terms: Optional[Mapping[Any, Any]]) -> Dict[str, str]:
    """Strip keys and values, dropping rows whose key is blank."""
    cleaned = {}
    for key, value in (terms or {}).items():
        term = str(key).strip()
        if not term:
            continue
        cleaned[term] = "" if value is None else str(value).strip()
    return cleaned


def parse_glossary_response(text: str) -> Dict[str, str]:
    """
    Parse the JSON object returned by a glossary extraction call.

    Markdown fences (```json ... ```) around the object are tolerated.

    Raises:
        RemoteCallError: If the response is not a JSON object.
    """
    cleaned = _JSON_FENCE.sub('', (text or '').strip()).strip()
    if not cleaned:
        return {}
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise RemoteCallError(f"Glossary response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise RemoteCallError(
            f"Glossary response must be a JSON object, got {type(data).__name__}"
        )
    return clean_terms(data)


def build_prompt_section(terms: Optional[Mapping[str, str]]) -> str:
    """Render the glossary block of a translation system prompt."""
    if not terms:
        return ""

    lines = [
        "**GLOSSARY (MUST FOLLOW):**",
        "You MUST strictly adhere to the following translations for these "
        "specific terms. Do not deviate.",
    ]
    for term, translation in list(terms.items())[:GLOSSARY_PROMPT_MAX_TERMS]:
        lines.append(f'- Translate "{term}" as "{translation}"')
    return "\n".join(lines)


def load_glossary(path: Path) -> Dict[str, str]:
    """Load glossary terms from a JSON file"""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    terms = data.get("terms", data) if isinstance(data, dict) else {}
    if not isinstance(terms, dict):
        raise ValueError(f"Glossary file {path} has no term mapping")
    terms = clean_terms(terms)
    logger.info(f"Loaded {len(terms)} terms from {Path(path).name}")
    return terms


def save_glossary(path: Path, terms: Mapping[str, str],
                  source_lang: str = "", target_lang: str = ""):
    """Save glossary terms to a JSON file"""
    data = {
        "version": "1.0",
        "source_lang": source_lang,
        "target_lang": target_lang,
        "terms": dict(terms),
    }
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, ensure_ascii=False, indent=2),
        encoding="utf-8"
    )
    logger.debug(f"Saved glossary to {path}")
