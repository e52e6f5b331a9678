from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from voicesub.media import MAX_MEDIA_BYTES
from voicesub.nlp.dictionary import DEFAULT_DICTIONARY_URL
from voicesub.nlp.translator.mymemory import DEFAULT_API_URL

DEFAULTS: dict[str, Any] = {
    "list_devices": False,
    "debug": False,
    "translator": "mymemory",
    "api_url": DEFAULT_API_URL,
    "dictionary_url": DEFAULT_DICTIONARY_URL,
    "source_lang": "auto",
    "target_lang": "uz",
    "max_attempts": 3,
    "base_delay_sec": 1.0,
    "full_text_cap": 500,
    "segment_cap": 20,
    "max_media_mb": MAX_MEDIA_BYTES // (1024 * 1024),
    "device": None,
    "sr": 16000,
    "channels": 1,
    "chunk_sec": 0.5,
    "rms_th": 250.0,
    "silence_chunks": 2,
    "min_utter_sec": 0.6,
    "max_utter_sec": 6.0,
    "model": "tiny",
    "print_console": True,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def default_asset_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "assets" / "config" / "default.json"


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("VoiceSub", "VoiceSub"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: payload[key] for key in CONFIG_KEYS if key in payload}


def load_default_config() -> dict[str, Any]:
    out = copy.deepcopy(DEFAULTS)
    path = default_asset_config_path()
    if path.exists():
        out.update(_known_only(_load_json_dict(path)))
    return out


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    path = Path(config_path) if config_path else ensure_user_config_exists()
    existing = _known_only(_load_json_dict(path)) if path.exists() else {}
    merged = load_default_config()
    merged.update(existing)
    merged.update(_known_only(values))
    _write_json_dict(path, merged)
    return path


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="voicesub", description="Live speech to translated subtitles")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--debug", action="store_true", help="log debug events to the console")
    p.add_argument("--media", default=None, help="video file being played (validated, used for naming)")
    p.add_argument("--duration", type=float, default=None, help="media duration in seconds")
    p.add_argument("--word", default=None, help="look up a single word or phrase and exit")

    p.add_argument("--translator", default=defaults["translator"], choices=["mymemory", "argos", "stub"])
    p.add_argument("--api-url", default=defaults["api_url"], help="MyMemory-compatible endpoint")
    p.add_argument("--dictionary-url", default=defaults["dictionary_url"], help="lexical lookup endpoint")
    p.add_argument("--source-lang", default=defaults["source_lang"], help="source language code or 'auto'")
    p.add_argument("--target-lang", default=defaults["target_lang"], help="target language code")
    p.add_argument("--max-attempts", type=int, default=defaults["max_attempts"], help="translation attempts")
    p.add_argument(
        "--base-delay-sec",
        type=float,
        default=defaults["base_delay_sec"],
        help="retry backoff unit; attempt n waits n * this",
    )
    p.add_argument(
        "--full-text-cap",
        type=int,
        default=defaults["full_text_cap"],
        help="characters of the transcript sent for the full translation",
    )
    p.add_argument("--segment-cap", type=int, default=defaults["segment_cap"], help="segments translated one by one")
    p.add_argument("--max-media-mb", type=int, default=defaults["max_media_mb"], help="media size limit (MB)")

    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--channels", type=int, default=defaults["channels"], help="input channels")
    p.add_argument("--chunk-sec", type=float, default=defaults["chunk_sec"], help="mic chunk size in seconds")
    p.add_argument("--rms-th", type=float, default=defaults["rms_th"], help="RMS threshold for speech VAD")
    p.add_argument(
        "--silence-chunks",
        type=int,
        default=defaults["silence_chunks"],
        help="finalize after this many non-speech chunks",
    )
    p.add_argument(
        "--min-utter-sec",
        type=float,
        default=defaults["min_utter_sec"],
        help="ignore utterances shorter than this",
    )
    p.add_argument(
        "--max-utter-sec",
        type=float,
        default=defaults["max_utter_sec"],
        help="force finalize while continuously speaking (seconds)",
    )
    p.add_argument("--model", default=defaults["model"], help="faster-whisper model size")
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print segments as they are finalized",
    )
    return p


def _check_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.max_attempts < 1:
        parser.error("--max-attempts must be >= 1")
    if args.base_delay_sec < 0:
        parser.error("--base-delay-sec must be >= 0")
    if args.full_text_cap < 1 or args.segment_cap < 0:
        parser.error("--full-text-cap must be >= 1 and --segment-cap >= 0")
    if args.max_media_mb < 1:
        parser.error("--max-media-mb must be >= 1")
    if args.target_lang == "auto":
        parser.error("--target-lang cannot be auto")
    if args.duration is not None and args.duration <= 0:
        parser.error("--duration must be > 0")


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    args = parser.parse_args(argv)
    _check_args(parser, args)
    if defaults.get("list_devices"):
        args.list_devices = True
    if defaults.get("debug"):
        args.debug = True
    return args
