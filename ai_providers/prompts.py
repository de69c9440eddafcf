"""
Prompt builders for glossary extraction and subtitle translation.
"""

from typing import Dict, Optional

from core.glossary import build_prompt_section


EXTRACTION_INSTRUCTION = """You are a linguistic analysis tool for subtitles, specialised in keeping characters and terminology consistent when translating from {source_lang} to {target_lang}. Scan the subtitle content and identify the key terms for a translation glossary.

**KEY FOCUS:** Identify **proper names** and **forms of address** so that gender is rendered correctly and consistently in the translation. Do not confuse male and female characters.

**WHAT TO EXTRACT:**
1.  **Proper nouns:**
    *   Names of people (e.g. "John", "Mary"). For each name, infer the character's gender (male/female) from context where possible.
    *   Place names (e.g. "Winterfell").
    *   Organisation names (e.g. "Stark Industries").
2.  **Pronouns & gendered forms of address:**
    *   How characters address each other (e.g. "Mr. Smith", "Miss Bennet", "honey", "sir").
    *   Where possible, add entries that make the relationship and gender context explicit.
3.  **Recurring technical terms or jargon:**
    *   Any other distinctive, important phrase that appears several times.

**OUTPUT FORMAT:**
- Your response **MUST** be a single valid JSON object.
- Keys are the original terms in the source language.
- Values are your suggested translations in the target language.
- For character names you may add a gender hint to the translation when useful, e.g. "John (male)" or "Mary (female)".

**Example response for English to Vietnamese:**
{{
  "Naruto": "Naruto (nam)",
  "Sakura": "Sakura (nữ)",
  "Hokage": "Hỏa Ảnh",
  "Konohagakure": "Làng Lá",
  "Jutsu": "Thuật",
  "Mr. Anderson": "Ông Anderson"
}}

Do not include any other text, explanation or markdown formatting such as ```json. Output only the raw JSON object. If no terms are found, return an empty JSON object {{}}."""


EXTRACTION_CONTENT = """**Source Language:** {source_lang}
**Target Language:** {target_lang}
**Subtitle Content to Analyze (first {sample_chars} chars):**
---
{content}
---
"""


TRANSLATION_INSTRUCTION = """You are an expert subtitle translator. Your task is to translate the provided subtitle content from {source_lang} to {target_lang}.
{glossary}
**CRITICAL RULES:**
1.  **ONLY** translate the actual dialogue or text portions of the subtitles.
2.  **DO NOT** alter subtitle index numbers (e.g., 1, 2, 3...).
3.  **DO NOT** alter timestamps (e.g., `00:00:20,000 --> 00:00:24,400`).
4.  **PRESERVE FORMATTING TAGS:** Keep all original formatting tags (like `<i>`, `<b>`, `<u>`, `<font>`, etc.) and their positions relative to the translated text.
5.  **PRESERVE LINE BREAKS:** Maintain the original line breaks within each subtitle text block.
6.  **ACCURATE GENDER PRONOUNS:** Infer the gender of speakers and their relationships from the dialogue and use the most natural pronouns and terms of address of {target_lang}.
7.  Adhere to the user's specific translation instructions for tone and style.
8.  Your final output **MUST** be only the valid, translated subtitle content. Do not include any extra explanations, notes, or markdown formatting like ```srt."""


TRANSLATION_CONTENT = """**User's Translation Instructions:**
{instruction}

**Subtitle Content to Translate (Chunk {chunk_number} of {chunk_total}):**
---
{content}
---
"""


def extraction_instruction(source_lang: str, target_lang: str) -> str:
    return EXTRACTION_INSTRUCTION.format(source_lang=source_lang, target_lang=target_lang)


def extraction_content(content: str, source_lang: str, target_lang: str, sample_chars: int) -> str:
    return EXTRACTION_CONTENT.format(
        source_lang=source_lang,
        target_lang=target_lang,
        sample_chars=sample_chars,
        content=content,
    )


def translation_instruction(source_lang: str, target_lang: str,
                            glossary: Optional[Dict[str, str]] = None) -> str:
    """System instruction for a translation call, with the glossary block if any."""
    section = build_prompt_section(glossary)
    return TRANSLATION_INSTRUCTION.format(
        source_lang=source_lang,
        target_lang=target_lang,
        glossary=f"\n{section}\n" if section else "",
    )


def translation_content(content: str, instruction: str, chunk_number: int, chunk_total: int) -> str:
    return TRANSLATION_CONTENT.format(
        instruction=instruction,
        chunk_number=chunk_number,
        chunk_total=chunk_total,
        content=content,
    )
