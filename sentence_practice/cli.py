"""CLI interface: segment, check, read aloud and dictation drills."""

import argparse
import asyncio
import logging
import os
import sys
import threading

from sentence_practice.constants import DEFAULT_VOICE, STORE_PATH, TTS_RATE, VERSION
from sentence_practice.matching import detect_wrong_words, match, progress_stats
from sentence_practice.models import PlaybackEvent, PracticeMode, SpeechSettings
from sentence_practice.rendering import render_progress, to_plain_text
from sentence_practice.scheduler import PlaybackScheduler
from sentence_practice.segmenter import load_sentences
from sentence_practice.session import PracticeSession
from sentence_practice.store import InputStore
from sentence_practice.tts import EdgeSynthesisBackend, list_voices

logger = logging.getLogger(__name__)


def _read_text(file_path: str) -> str:
    """Load a text file, exiting with an error if it is missing or empty."""
    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)

    with open(file_path) as f:
        text = f.read()

    if not text.strip():
        print(f"Error: File is empty: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    return text


def _load_sentences(file_path: str, start: int):
    sentences = load_sentences(_read_text(file_path))
    if not 0 <= start < len(sentences):
        print(f"Error: --start must be between 1 and {len(sentences)}", file=sys.stderr)
        raise SystemExit(1)
    return sentences


def _settings(args) -> SpeechSettings:
    return SpeechSettings(voice=args.voice, rate=args.rate)


def cmd_split(args):
    """Print the sentences of a text file with their ids."""
    sentences = load_sentences(_read_text(args.file))
    for s in sentences:
        print(f"{s.index + 1:>4}  {s.text}")
        if args.ids:
            print(f"      id: {s.id}")
    print(f"{len(sentences)} sentences")


def cmd_check(args):
    """Compare one candidate against one target and show the display."""
    mode = PracticeMode(args.mode)
    result = match(args.target, args.candidate, mode)
    print(to_plain_text(render_progress(args.target, args.candidate, mode)))

    unit = "words" if mode == PracticeMode.RECITATION else "letters"
    print(f"{result.correct_units}/{result.total_units} {unit} correct ({result.accuracy:.0f}%)")
    if result.partial_units:
        print(f"{result.partial_units} partial")
    print("Complete" if result.is_complete else "Incomplete")


async def _read_aloud(sentences, start: int, settings: SpeechSettings, backend) -> None:
    done = asyncio.Event()
    total = len(sentences)

    def on_event(event: PlaybackEvent):
        if event.kind == "sentence":
            print(f"  [{event.sentence_index + 1}/{total}] {sentences[event.sentence_index].text}")
        elif event.kind == "error":
            print(f"Error: playback failed ({event.code})", file=sys.stderr)
            done.set()
        elif event.kind in ("finished", "stopped"):
            done.set()

    scheduler = PlaybackScheduler(backend, settings=settings, on_event=on_event)
    scheduler.speak_all(sentences, start)
    try:
        await done.wait()
    finally:
        scheduler.stop()


def cmd_read(args):
    """Read a text file aloud, sentence by sentence."""
    start = args.start - 1
    sentences = _load_sentences(args.file, start)
    try:
        asyncio.run(_read_aloud(sentences, start, _settings(args), EdgeSynthesisBackend()))
    except KeyboardInterrupt:
        print("\nStopped.")


def _deliver(future: asyncio.Future, line: str | None, error: BaseException | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(line)


async def _read_line(prompt: str) -> str:
    """input() on a daemon thread.

    A thread blocked in input() must not keep asyncio.run() from returning
    on Ctrl-C, so the default executor (joined at shutdown) is not used.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def read():
        line, error = None, None
        try:
            line = input(prompt)
        except (EOFError, OSError) as e:
            error = e
        try:
            loop.call_soon_threadsafe(_deliver, future, line, error)
        except RuntimeError:
            logger.debug("Dropping input read after the event loop closed")

    threading.Thread(target=read, name="prompt", daemon=True).start()
    return await future


async def _dictate(sentences, start: int, settings: SpeechSettings, store: InputStore, backend) -> None:
    scheduler = PlaybackScheduler(backend, settings=settings)
    scheduler.load(sentences)
    session = PracticeSession(scheduler, PracticeMode.DICTATION)
    session.restore_inputs(store.all())
    session.activate()
    session.set_active_sentence(start)
    scheduler.speak(sentences[start].text, start)

    total = len(sentences)
    print("Type the whole sentence you hear. ':r' replays, ':s' skips, ':q' quits.")

    try:
        while session.active_index is not None:
            index = session.active_index
            sentence = sentences[index]
            print(f"\n[{index + 1}/{total}] {to_plain_text(session.display_for(index))}")
            try:
                line = await _read_line("> ")
            except EOFError:
                break

            command = line.strip()
            if command == ":q":
                break
            if command == ":r":
                scheduler.speak(sentence.text, index)
                continue
            if command == ":s":
                session.on_complete()
                continue

            candidate = session.update_input(index, line)
            store.set(sentence.id, candidate)

            if session.active_index == index:
                stats = progress_stats(sentence.text, candidate)
                print(f"  {stats.correct_characters}/{stats.total_characters} letters correct")
                for wrong in detect_wrong_words(sentence.text, candidate):
                    print(f"  check: {wrong.word} (you typed '{wrong.typed}')")
            else:
                print(f"  Correct: {sentence.text}")
    finally:
        scheduler.stop()
        store.save()

    if session.active_index is None:
        print("\nDictation finished.")


def cmd_dictate(args):
    """Interactive dictation drill over a text file."""
    start = args.start - 1
    sentences = _load_sentences(args.file, start)
    store = InputStore(args.store, PracticeMode.DICTATION)
    try:
        asyncio.run(_dictate(sentences, start, _settings(args), store, EdgeSynthesisBackend()))
    except KeyboardInterrupt:
        print("\nStopped.")


def cmd_voices(args):
    """List available voices."""
    voices = list_voices(args.filter)
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        print(f"  {v}")


def _add_speech_options(parser):
    parser.add_argument("--start", type=int, default=1, help="Sentence number to start from (1-based)")
    parser.add_argument("--voice", default=DEFAULT_VOICE, help="edge-tts voice name")
    parser.add_argument("--rate", default=TTS_RATE, help='Relative speech rate, e.g. "-10%%"')


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="sentence-practice",
        description="Sentence Practice — read along and dictate text sentence by sentence",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # split
    split_parser = subparsers.add_parser("split", help="Show how a text file is split into sentences")
    split_parser.add_argument("file", help="Path to the text file")
    split_parser.add_argument("--ids", action="store_true", help="Also print sentence ids")
    split_parser.set_defaults(func=cmd_split)

    # check
    check_parser = subparsers.add_parser("check", help="Compare an answer against a sentence")
    check_parser.add_argument("target", help="Target sentence")
    check_parser.add_argument("candidate", help="Typed or spoken answer")
    check_parser.add_argument("--mode", choices=[m.value for m in PracticeMode], default="dictation")
    check_parser.set_defaults(func=cmd_check)

    # read
    read_parser = subparsers.add_parser("read", help="Read a text file aloud")
    read_parser.add_argument("file", help="Path to the text file")
    _add_speech_options(read_parser)
    read_parser.set_defaults(func=cmd_read)

    # dictate
    dictate_parser = subparsers.add_parser("dictate", help="Dictation drill over a text file")
    dictate_parser.add_argument("file", help="Path to the text file")
    dictate_parser.add_argument("--store", default=STORE_PATH, help="Where to save your answers")
    _add_speech_options(dictate_parser)
    dictate_parser.set_defaults(func=cmd_dictate)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
