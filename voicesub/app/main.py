from __future__ import annotations

import threading
import traceback
from typing import Any

from voicesub.app.config import resolve_args
from voicesub.app.diagnostics import hint_for_exception, message_for_error_code, summarize_exception
from voicesub.app.logging_setup import setup_app_logger
from voicesub.app.services import JobServices, build_job_services
from voicesub.app.state import JobState
from voicesub.audio.mic import MicError, MicrophoneCapture
from voicesub.contracts import Segment
from voicesub.errors import InvalidMedia, TranslationFailure
from voicesub.live.runner import JobSnapshot, TranslationJobRunner
from voicesub.media import PlaybackClock, format_timestamp


def _print_segment(seg: Segment) -> None:
    print(f"[{format_timestamp(seg.start_time)} -> {format_timestamp(seg.end_time)}] {seg.original_text}")


def _report(snap: JobSnapshot) -> int:
    if snap.state == JobState.ERROR:
        print(f"Error: {message_for_error_code(snap.error_code)}")
        return 1
    if snap.state != JobState.DONE:
        print(f"Cancelled with {len(snap.segments)} segment(s) collected.")
        return 130

    print("=" * 60)
    print(f"Original: {snap.original_text.strip()}")
    if snap.detected_lang:
        print(f"Detected language: {snap.detected_lang.upper()}")
    if snap.translated_text:
        print(f"Translation: {snap.translated_text}")
    for seg in snap.segments:
        print(f"[{format_timestamp(seg.start_time)} -> {format_timestamp(seg.end_time)}]")
        print(f"  {seg.original_text}")
        if seg.translated_text:
            print(f"  {seg.translated_text}")
    return 0


def _run_lookup(args: Any, services: JobServices) -> int:
    try:
        result = services.lookup.lookup(args.word, args.source_lang, args.target_lang)
    except TranslationFailure as e:
        print(f"Error: {e}")
        return 1
    if result is None:
        print("Nothing to look up.")
        return 1
    for entry in result.entries:
        label = f" ({entry.part_of_speech})" if entry.part_of_speech else ""
        phonetic = f" {entry.phonetic}" if entry.phonetic else ""
        print(f"{entry.word}{phonetic}: {entry.translation}{label}")
        for example in entry.examples:
            print(f"  e.g. {example}")
        if entry.synonyms:
            print(f"  synonyms: {', '.join(entry.synonyms)}")
    return 0


def _run_job(args: Any, services: JobServices, logger) -> int:
    runner = TranslationJobRunner(
        translator=services.translator,
        source=services.source,
        full_text_cap=int(args.full_text_cap),
        segment_cap=int(args.segment_cap),
        max_media_bytes=int(args.max_media_mb) * 1024 * 1024,
        on_segment=_print_segment if args.print_console else None,
    )
    if args.media:
        try:
            runner.load(args.media)
        except InvalidMedia as e:
            print(f"Error: {e}")
            return 2
    else:
        runner.attach_live()

    clock = PlaybackClock(duration=args.duration)
    outcome: dict[str, Any] = {}

    def _worker() -> None:
        try:
            outcome["snapshot"] = runner.run(clock, str(args.source_lang), str(args.target_lang))
        except Exception:
            outcome["error"] = traceback.format_exc()
            logger.exception("job_crash")

    worker = threading.Thread(target=_worker, name="voicesub-job-worker", daemon=True)
    worker.start()
    print("Listening. Ctrl+C finishes and translates; press it again to cancel.")

    interrupts = 0
    while worker.is_alive():
        try:
            worker.join(timeout=0.2)
        except KeyboardInterrupt:
            interrupts += 1
            if interrupts == 1:
                print("\nFinishing transcription...")
                clock.finish()
            else:
                print("\nCancelling...")
                runner.cancel()

    if "error" in outcome:
        summary = summarize_exception(outcome["error"])
        print(f"Error: {summary}")
        print(f"Hint: {hint_for_exception(summary)}")
        return 1
    return _report(outcome["snapshot"])


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"argv": argv or [], "log_path": str(log_path)})

    if args.list_devices:
        try:
            print(MicrophoneCapture.list_devices())
        except MicError as e:
            print(f"Error: {e}")
            return 1
        return 0

    services = build_job_services(args)
    if args.word:
        return _run_lookup(args, services)
    return _run_job(args, services, logger)


if __name__ == "__main__":
    raise SystemExit(main())
