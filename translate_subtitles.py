#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Subtitle Translation CLI - batch-translate .srt files with Gemini

Usage:
    python translate_subtitles.py movie.srt
    python translate_subtitles.py season1/ --target-lang French -o out/
    python translate_subtitles.py *.srt --glossary --review-glossary

Examples:
    # Translate every .srt in a folder to Vietnamese (default)
    python translate_subtitles.py ./subs

    # Formal style, stronger model, glossary extracted and reviewed by hand
    python translate_subtitles.py ep01.srt ep02.srt --style formal \\
        --model gemini-2.5-pro --glossary --review-glossary
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from tqdm import tqdm

# Load environment variables before settings are read
load_dotenv()

from ai_providers import create_provider
from config.constants import GEMINI_MODELS, PROMPT_TEMPLATES, SUPPORTED_EXTENSIONS
from config.logging_config import configure_logging, get_logger, set_console_level
from config.settings import settings
from core.batch import BatchQueueManager, JobStatus, QueueConfig
from core.errors import ConfigurationError, TranslatorError
from core.glossary import load_glossary, save_glossary

logger = get_logger(__name__)


def collect_inputs(paths: List[str]) -> List[Path]:
    """Expand files and directories into the list of subtitle files."""
    files = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for ext in SUPPORTED_EXTENSIONS:
                files.extend(sorted(path.glob(f"*{ext}")))
        elif path.exists():
            files.append(path)
        else:
            raise FileNotFoundError(f"Input not found: {raw}")
    return files


def build_queue_config(args) -> QueueConfig:
    config = QueueConfig.from_settings(settings)
    if args.concurrency:
        config.max_concurrent = args.concurrency
    if args.rate_limit:
        config.rate_limit_jobs = args.rate_limit
    if args.chunk_size:
        config.chunk_size = args.chunk_size
    return config


async def review_glossaries(manager: BatchQueueManager, output_dir: Path, interactive: bool):
    """Write extracted glossaries to disk, optionally let the user edit them, then release the jobs."""
    awaiting = manager.registry.with_status(JobStatus.AWAITING_VALIDATION)
    if not awaiting:
        return

    glossary_dir = output_dir / "glossaries"
    paths = {}
    for job in awaiting:
        path = glossary_dir / f"{job.name}.glossary.json"
        save_glossary(path, job.glossary or {}, job.source_lang, job.target_lang)
        paths[job.id] = path

    if interactive:
        print(f"\n📝 {len(paths)} glossary file(s) written to {glossary_dir}")
        for job_id, path in paths.items():
            print(f"   - {path.name}")
        await asyncio.to_thread(input, "Edit them if needed, then press Enter to continue... ")

    for job_id, path in paths.items():
        manager.save_glossary(job_id, load_glossary(path))


async def run_batch(args) -> int:
    provider = create_provider(settings)
    provider.ensure_configured()

    if args.output:
        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)
    else:
        settings.ensure_dirs()
        output_dir = settings.output_dir

    files = collect_inputs(args.inputs)
    prompt = args.prompt or PROMPT_TEMPLATES[args.style]
    detect_glossary = settings.detect_glossary if args.glossary is None else args.glossary

    manager = BatchQueueManager(provider, build_queue_config(args))
    try:
        for path in files:
            manager.add_file(
                path,
                prompt=prompt,
                source_lang=args.source_lang,
                target_lang=args.target_lang,
                model=args.model,
                detect_glossary=detect_glossary,
            )
        if not files:
            print("❌ No subtitle files found", file=sys.stderr)
            return 1

        print(f"\n{'='*60}")
        print(f"🎬 SUBTITLE TRANSLATION - {len(files)} file(s)")
        print(f"{'='*60}")
        print(f"Model:    {args.model}")
        print(f"Language: {args.source_lang} → {args.target_lang}")
        print(f"Glossary: {'on' if detect_glossary else 'off'}")
        print(f"Output:   {output_dir}")

        if detect_glossary:
            print("\n🔍 Extracting glossaries...")
            await manager.wait_for_extractions()
            await review_glossaries(manager, output_dir, args.review_glossary)

        total = len(manager.jobs)
        with tqdm(total=total, desc="Translating", unit="file") as bar:
            def on_change(job_id, job):
                finished = manager.overall_progress().finished
                if finished != bar.n:
                    bar.update(finished - bar.n)
                if job is not None and job.progress_text:
                    bar.set_postfix_str(f"{job.name}: {job.progress}%")

            manager.subscribe(on_change)
            bar.update(manager.overall_progress().finished)
            try:
                if manager.start_processing():
                    await manager.wait_until_idle()
            finally:
                manager.unsubscribe(on_change)

        written = 0
        for filename, text in manager.completed_results():
            (output_dir / filename).write_text(text, encoding="utf-8")
            written += 1

        summary = manager.summary()
        print(f"\n{'='*60}")
        print(f"✅ Completed: {summary[JobStatus.COMPLETED.value]}   "
              f"❌ Failed: {summary[JobStatus.FAILED.value]}   "
              f"⛔ Cancelled: {summary[JobStatus.CANCELLED.value]}")
        print(f"📄 {written} file(s) written to {output_dir}")
        for job in manager.registry.with_status(JobStatus.FAILED):
            print(f"   ❌ {job.file_name}: {job.error}")
        print(f"{'='*60}\n")

        return 1 if summary[JobStatus.FAILED.value] else 0

    finally:
        await manager.shutdown()


def main():
    parser = argparse.ArgumentParser(
        description="Batch-translate .srt subtitle files with Google Gemini",
        epilog="""
Examples:
  %(prog)s movie.srt
  %(prog)s ./subs --target-lang French -o translated/
  %(prog)s ep01.srt ep02.srt --style casual --glossary --review-glossary
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'inputs',
        nargs='+',
        help='Subtitle files or directories containing .srt files'
    )

    parser.add_argument(
        '-o', '--output',
        help=f'Output directory (default: {settings.output_dir})'
    )

    parser.add_argument(
        '--source-lang',
        default=settings.source_lang,
        help=f'Source language (default: {settings.source_lang})'
    )

    parser.add_argument(
        '--target-lang',
        default=settings.target_lang,
        help=f'Target language (default: {settings.target_lang})'
    )

    parser.add_argument(
        '-m', '--model',
        choices=GEMINI_MODELS,
        default=settings.model,
        help=f'Translation model (default: {settings.model})'
    )

    parser.add_argument(
        '-s', '--style',
        choices=sorted(PROMPT_TEMPLATES),
        default='standard',
        help='Built-in translation instructions (default: standard)'
    )

    parser.add_argument(
        '-p', '--prompt',
        help='Custom translation instructions (overrides --style)'
    )

    glossary = parser.add_mutually_exclusive_group()
    glossary.add_argument(
        '--glossary',
        dest='glossary',
        action='store_true',
        default=None,
        help='Extract a glossary of names and terms before translating'
    )
    glossary.add_argument(
        '--no-glossary',
        dest='glossary',
        action='store_false',
        help='Skip glossary extraction'
    )

    parser.add_argument(
        '--review-glossary',
        action='store_true',
        help='Pause so extracted glossaries can be edited before translation'
    )

    parser.add_argument(
        '--concurrency',
        type=int,
        help=f'Files translated at once (default: {settings.max_concurrent_jobs})'
    )

    parser.add_argument(
        '--rate-limit',
        type=int,
        help=f'File starts per {settings.rate_limit_window_seconds:.0f}s window '
             f'(default: {settings.rate_limit_jobs})'
    )

    parser.add_argument(
        '--chunk-size',
        type=int,
        help=f'Subtitle entries per request (default: {settings.chunk_size})'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show per-job log output on the console'
    )

    args = parser.parse_args()

    configure_logging(settings.log_level.upper(), settings.log_file or None)
    if args.verbose:
        settings.print_config()
    else:
        set_console_level("WARNING")

    try:
        return asyncio.run(run_batch(args))

    except ConfigurationError as e:
        print(f"\n❌ Configuration error: {e}", file=sys.stderr)
        return 1
    except (FileNotFoundError, TranslatorError) as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n\n⚠️  Translation cancelled by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
