#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from pydantic_settings import BaseSettings

from .constants import (
    CHUNK_SIZE,
    DEFAULT_MODEL,
    DEFAULT_PROMPT,
    DEFAULT_SOURCE_LANG,
    DEFAULT_TARGET_LANG,
    GLOSSARY_SAMPLE_CHARS,
    LOG_FILE,
    LOG_LEVEL,
    QUEUE_MAX_CONCURRENT,
    QUEUE_RATE_LIMIT_JOBS,
    QUEUE_RATE_LIMIT_WINDOW_SECONDS,
    SCHEDULER_TICK_SECONDS,
)


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== API Keys ==========
    google_api_key: str = ""

    # ========== Model ==========
    model: str = DEFAULT_MODEL

    # ========== Languages ==========
    source_lang: str = DEFAULT_SOURCE_LANG
    target_lang: str = DEFAULT_TARGET_LANG
    prompt: str = DEFAULT_PROMPT

    # ========== Queue ==========
    chunk_size: int = CHUNK_SIZE
    max_concurrent_jobs: int = QUEUE_MAX_CONCURRENT
    rate_limit_jobs: int = QUEUE_RATE_LIMIT_JOBS
    rate_limit_window_seconds: float = QUEUE_RATE_LIMIT_WINDOW_SECONDS
    tick_interval_seconds: float = SCHEDULER_TICK_SECONDS

    # ========== Features ==========
    detect_glossary: bool = True
    glossary_sample_chars: int = GLOSSARY_SAMPLE_CHARS

    # ========== Directories ==========
    output_dir: Path = BASE_DIR / "data" / "output"

    # ========== Logging ==========
    log_level: str = LOG_LEVEL
    log_file: str = LOG_FILE

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def ensure_dirs(self):
        """Create output directories"""
        self.output_dir.mkdir(exist_ok=True, parents=True)

    def print_config(self):
        """Print configuration summary"""
        print("\n" + "=" * 70)
        print("CONFIGURATION")
        print("=" * 70)
        print(f"Model:           {self.model}")
        print(f"Languages:       {self.source_lang} -> {self.target_lang}")
        print(f"Chunk Size:      {self.chunk_size} entries")
        print(f"Concurrency:     {self.max_concurrent_jobs} jobs")
        print(f"Rate Limit:      {self.rate_limit_jobs} starts / {self.rate_limit_window_seconds:.0f}s")
        print(f"Glossary:        {'on' if self.detect_glossary else 'off'}")
        print(f"Output Dir:      {self.output_dir}")
        print("=" * 70 + "\n")


# Global settings instance
settings = Settings()
