import argparse
import logging
from typing import TYPE_CHECKING, Any

from seqsynth.configuration import get_default_config, instrument_settings, load_config_file, save_config_file
from seqsynth.errors import ConfigError, NoFrequencyForIDError, SeqSynthError, WriteError
from seqsynth.frequency import MidiFrequencyResolver

if TYPE_CHECKING:
    from seqsynth.instrument import Instrument
    from seqsynth.pcm import PCM
    from seqsynth.sequence import Sequence

logger = logging.getLogger("seqsynth")


def build_instruments(
    sequence: "Sequence",
    waveform: str,
    loopable: bool,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> dict[int, "Instrument"]:
    from seqsynth.instrument import Instrument
    from seqsynth.key_generators import make_key_generator

    config = {"instruments": {"waveform": waveform, "loopable": loopable, "overrides": overrides or {}}}
    instruments: dict[int, Instrument] = {}
    for instrument_id in sorted({note.instrument_id for note in sequence.notes}):
        name, is_loopable = instrument_settings(config, instrument_id)
        instruments[instrument_id] = Instrument(make_key_generator(name), loopable=is_loopable)
    return instruments


def render_sequence_file(
    notes_json_path: str,
    sample_rate: int,
    channels: int,
    waveform: str,
    loopable: bool,
    falloff_samples: int,
    max_workers: int | None,
    a4_hz: float,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> "PCM":
    from seqsynth.pcm import PCMParameters
    from seqsynth.sequence_io import load_sequence_json
    from seqsynth.synthesizer import Synthesizer

    sequence = load_sequence_json(notes_json_path)
    synth = Synthesizer(
        sequence=sequence,
        instruments=build_instruments(sequence, waveform=waveform, loopable=loopable, overrides=overrides),
        frequency_resolver=MidiFrequencyResolver(a4_hz=a4_hz),
        parameters=PCMParameters(sample_rate=sample_rate, channel_count=channels),
        falloff_samples=falloff_samples,
        max_workers=max_workers,
    )
    return synth.run()


def render_wave_file(
    notes_json_path: str,
    output_wav: str,
    sample_rate: int,
    channels: int,
    sample_width: int,
    waveform: str,
    loopable: bool,
    falloff_samples: int,
    max_workers: int | None,
    a4_hz: float,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> int:
    from seqsynth.wave import SampleType, write_wave

    try:
        pcm = render_sequence_file(
            notes_json_path=notes_json_path,
            sample_rate=sample_rate,
            channels=channels,
            waveform=waveform,
            loopable=loopable,
            falloff_samples=falloff_samples,
            max_workers=max_workers,
            a4_hz=a4_hz,
            overrides=overrides,
        )
        size = write_wave(output_wav, pcm, SampleType.from_bits(sample_width))
    except (SeqSynthError, ValueError, OSError) as exc:
        print(f"Render failed: {exc}")
        return 3
    print(f"Rendered {pcm.frame_count} frames ({pcm.duration_s:.3f}s) from {notes_json_path}")
    print(f"Wrote {size} bytes to {output_wav}")
    return 0


def play_sequence_file(
    notes_json_path: str,
    sample_rate: int,
    channels: int,
    waveform: str,
    loopable: bool,
    falloff_samples: int,
    max_workers: int | None,
    a4_hz: float,
    sample_width: int,
    output_wav: str | None,
    no_playback: bool,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> int:
    from seqsynth.playback import play_pcm
    from seqsynth.wave import SampleType, write_wave

    try:
        pcm = render_sequence_file(
            notes_json_path=notes_json_path,
            sample_rate=sample_rate,
            channels=channels,
            waveform=waveform,
            loopable=loopable,
            falloff_samples=falloff_samples,
            max_workers=max_workers,
            a4_hz=a4_hz,
            overrides=overrides,
        )
        if output_wav is not None:
            write_wave(output_wav, pcm, SampleType.from_bits(sample_width))
            print(f"Wrote audio to {output_wav}")
    except (SeqSynthError, ValueError, OSError) as exc:
        print(f"Render failed: {exc}")
        return 3

    if no_playback:
        return 0
    try:
        play_pcm(pcm)
    except ImportError:
        print("sounddevice is not installed. Install the playback extra to play audio.")
        return 4
    except Exception as exc:
        print(f"Playback failed: {exc}")
        return 4
    return 0


def probe_frequencies(frequency_ids: list[int], a4_hz: float) -> int:
    resolver = MidiFrequencyResolver(a4_hz=a4_hz)
    print("frequency_id,frequency_hz")
    code = 0
    for frequency_id in frequency_ids:
        try:
            print(f"{frequency_id},{resolver.resolve(frequency_id):.6f}")
        except NoFrequencyForIDError:
            print(f"{frequency_id},missing")
            code = 2
    return code


def _add_render_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--notes-json",
        type=str,
        required=True,
        help="Input JSON sequence: [{start_s,end_s|duration_s,frequency_id,instrument_id?,velocity_on?}, ...].",
    )
    parser.add_argument("--sample-rate", type=int, default=None, help="Output sample rate in Hz (default: 44100).")
    parser.add_argument("--channels", type=int, default=None, help="Output channel count (default: 2).")
    parser.add_argument(
        "--sample-width",
        type=int,
        default=None,
        help="WAVE sample width in bits: 8, 16 or 32 (default: 16).",
    )
    parser.add_argument(
        "--waveform",
        type=str,
        default=None,
        help="Key generator for instruments without an override: square, triangle, sawtooth, noise (default: square).",
    )
    parser.add_argument(
        "--no-loop",
        action="store_true",
        help="Truncate keys at their end instead of looping them.",
    )
    parser.add_argument(
        "--falloff-samples",
        type=int,
        default=None,
        help="Length of the anti-click fade at the end of every note (default: 100).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Render notes on this many threads (default: single-threaded).",
    )
    parser.add_argument("--a4-hz", type=float, default=None, help="Tuning reference for frequency ID 69 (default: 440).")
    parser.add_argument("--config", type=str, default=None, help="JSON config file with defaults.")
    parser.add_argument("--save-config", type=str, default=None, help="Write the effective config to this path.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render note sequences to WAVE audio")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    render = subparsers.add_parser("render", help="Render a note sequence to a WAVE file")
    _add_render_arguments(render)
    render.add_argument("--output", type=str, required=True, help="Output WAVE path.")

    play = subparsers.add_parser("play", help="Render a note sequence and play it")
    _add_render_arguments(play)
    play.add_argument("--output-wav", type=str, default=None, help="Also write the rendered audio to this path.")
    play.add_argument("--no-playback", action="store_true", help="Render only, do not open an audio device.")

    probe = subparsers.add_parser("probe", help="Print equal-tempered frequencies for frequency IDs")
    probe.add_argument(
        "--frequency-id",
        dest="frequency_ids",
        type=int,
        action="append",
        required=True,
        help="Frequency ID (MIDI note number). Pass multiple times to probe several IDs.",
    )
    probe.add_argument("--a4-hz", type=float, default=440.0, help="Tuning reference (default: 440).")
    return parser


def _effective_config(args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    config = load_config_file(args.config) if args.config else get_default_config()
    render_cfg = config["render"]
    if args.sample_rate is not None:
        render_cfg["sample_rate"] = args.sample_rate
    if args.channels is not None:
        render_cfg["channels"] = args.channels
    if args.sample_width is not None:
        render_cfg["sample_width"] = args.sample_width
    if args.falloff_samples is not None:
        render_cfg["falloff_samples"] = args.falloff_samples
    if args.workers is not None:
        render_cfg["max_workers"] = args.workers
    if args.waveform is not None:
        config["instruments"]["waveform"] = args.waveform
    if args.no_loop:
        config["instruments"]["loopable"] = False
    if args.a4_hz is not None:
        config["tuning"]["a4_hz"] = args.a4_hz
    if getattr(args, "no_playback", False):
        config["play"]["no_playback"] = True
    return config


def _validate_render_config(parser: argparse.ArgumentParser, config: dict[str, dict[str, Any]]) -> None:
    from seqsynth.key_generators import GENERATORS

    render_cfg = config["render"]
    if int(render_cfg["sample_rate"]) <= 0:
        parser.error("--sample-rate must be > 0.")
    if int(render_cfg["channels"]) <= 0:
        parser.error("--channels must be > 0.")
    if int(render_cfg["sample_width"]) not in (8, 16, 32):
        parser.error("--sample-width must be 8, 16 or 32.")
    if int(render_cfg["falloff_samples"]) < 0:
        parser.error("--falloff-samples must be >= 0.")
    if render_cfg["max_workers"] is not None and int(render_cfg["max_workers"]) <= 0:
        parser.error("--workers must be > 0 when provided.")
    if config["instruments"]["waveform"] not in GENERATORS:
        parser.error(f"--waveform must be one of: {', '.join(sorted(GENERATORS))}.")
    if float(config["tuning"]["a4_hz"]) <= 0:
        parser.error("--a4-hz must be > 0.")


def _common_render_kwargs(args: argparse.Namespace, config: dict[str, dict[str, Any]]) -> dict[str, Any]:
    render_cfg = config["render"]
    max_workers = render_cfg["max_workers"]
    return {
        "notes_json_path": args.notes_json,
        "sample_rate": int(render_cfg["sample_rate"]),
        "channels": int(render_cfg["channels"]),
        "waveform": str(config["instruments"]["waveform"]),
        "loopable": bool(config["instruments"]["loopable"]),
        "falloff_samples": int(render_cfg["falloff_samples"]),
        "max_workers": int(max_workers) if max_workers is not None else None,
        "a4_hz": float(config["tuning"]["a4_hz"]),
        "overrides": config["instruments"].get("overrides") or None,
    }


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "probe":
        if args.a4_hz <= 0:
            parser.error("--a4-hz must be > 0.")
        raise SystemExit(probe_frequencies(frequency_ids=args.frequency_ids, a4_hz=args.a4_hz))

    if args.command in ("render", "play"):
        try:
            config = _effective_config(args)
        except (ConfigError, OSError) as exc:
            parser.error(f"--config: {exc}")
        _validate_render_config(parser, config)
        if args.save_config:
            try:
                path = save_config_file(args.save_config, config)
            except WriteError as exc:
                parser.error(f"--save-config: {exc}")
            logger.info("Saved config to %s", path)
        kwargs = _common_render_kwargs(args, config)

        if args.command == "render":
            raise SystemExit(
                render_wave_file(
                    output_wav=args.output,
                    sample_width=int(config["render"]["sample_width"]),
                    **kwargs,
                )
            )
        raise SystemExit(
            play_sequence_file(
                sample_width=int(config["render"]["sample_width"]),
                output_wav=args.output_wav,
                no_playback=bool(config["play"]["no_playback"]),
                **kwargs,
            )
        )

    if args.command is None:
        parser.print_help()
        raise SystemExit(2)

    parser.error(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    main()
