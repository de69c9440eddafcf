"""
Centralized constants for the batch subtitle translator.
All magic numbers of the job engine live here.
"""

# ===========================================
# CHUNKING
# ===========================================
CHUNK_SIZE = 75                       # subtitle entries per API call
ENTRY_SEPARATOR = "\n\n"              # separator used to rejoin entries

# ===========================================
# QUEUE / SCHEDULER
# ===========================================
QUEUE_MAX_CONCURRENT = 4              # translation runs active at once
QUEUE_RATE_LIMIT_JOBS = 4             # job starts per rate window
QUEUE_RATE_LIMIT_WINDOW_SECONDS = 60.0
SCHEDULER_TICK_SECONDS = 1.0

# ===========================================
# PROGRESS
# ===========================================
PROGRESS_SETUP_PERCENT = 5            # reserved for preparation
PROGRESS_TRANSLATE_SPAN = 90          # spread across chunk completions
PROGRESS_DONE_PERCENT = 100

PROGRESS_TEXT_PREPARING = "Preparing..."
PROGRESS_TEXT_EXTRACTING = "Extracting glossary..."
PROGRESS_TEXT_COMPLETED = "Completed"
PROGRESS_TEXT_CANCELLED = "Cancelled"

# ===========================================
# GLOSSARY
# ===========================================
GLOSSARY_SAMPLE_CHARS = 20000         # prefix of the file sent for extraction
GLOSSARY_EXTRACTION_MODEL = "gemini-2.5-flash"
GLOSSARY_PROMPT_MAX_TERMS = 200

# ===========================================
# TRANSLATION
# ===========================================
GEMINI_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-3-pro-preview",
]
DEFAULT_MODEL = GEMINI_MODELS[0]
TRANSLATION_TEMPERATURE = 0.3

LANGUAGES = [
    "English", "Vietnamese", "Spanish", "French", "German",
    "Japanese", "Korean", "Chinese", "Russian", "Arabic",
]
DEFAULT_SOURCE_LANG = "English"
DEFAULT_TARGET_LANG = "Vietnamese"

PROMPT_TEMPLATES = {
    "standard": (
        "Translate this subtitle file naturally, keeping the original "
        "meaning and tone."
    ),
    "formal": (
        "Translate this subtitle file in a formal register, making sure "
        "technical terms are translated precisely. Use polite, formal forms "
        "of address that match each character's gender and standing."
    ),
    "casual": (
        "Translate this subtitle file in a casual, humorous tone, adapting "
        "jokes and cultural references where appropriate. Use familiar forms "
        "of address that reflect the characters' relationships and gender."
    ),
}
DEFAULT_PROMPT = PROMPT_TEMPLATES["standard"]

# ===========================================
# FILE HANDLING
# ===========================================
SUPPORTED_EXTENSIONS = ['.srt']
OUTPUT_EXTENSION = '.srt'
OUTPUT_DIR = 'data/output'

# ===========================================
# LOGGING
# ===========================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = 'logs/subtitle_translator.log'
LOG_MAX_SIZE_MB = 10
LOG_BACKUP_COUNT = 5
