#!/usr/bin/env python
"""Voice creature simulator — play a synthetic singer through the real pipeline.

Renders a sine "singer" at the current target pitch (optionally detuned),
runs it through the PitchEstimator and a GameSession at a fixed frame rate,
and logs what the creature does.

Usage
-----
    # Sequence game, singer 0.3 semitones sharp, 20 seconds
    python scripts/simulate_session.py --mode sequence --seconds 20 --detune 0.3

    # Creature game with a badly out-of-tune singer
    python scripts/simulate_session.py --mode simple --detune 2.5

    # Singer who goes quiet every 3 seconds for half a second
    python scripts/simulate_session.py --silence-every 3 --silence-for 0.5

Exit codes
----------
    0  — simulation ran (whether or not the game ended)
    2  — invalid arguments
"""

from __future__ import annotations

import argparse
import logging
import math
import random
import sys
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.audio.pitch import PitchEstimator  # noqa: E402
from core.audio.synth import render_cue, render_note  # noqa: E402
from core.audio.types import CueNote  # noqa: E402
from core.config import DEFAULT_DETECTOR_CONFIG, get_preset  # noqa: E402
from core.game.session import GameSession  # noqa: E402
from core.game.types import GameMode, GamePhase, SessionSnapshot  # noqa: E402

logger = logging.getLogger("simulate_session")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Voice creature game simulator")
    p.add_argument(
        "--mode",
        choices=[m.value for m in GameMode],
        default=GameMode.SEQUENCE.value,
        help="Game mode (default: sequence)",
    )
    p.add_argument(
        "--preset",
        choices=["creature", "sequence"],
        default=None,
        help="Config preset (default: creature for simple mode, sequence otherwise)",
    )
    p.add_argument("--seconds", type=float, default=20.0, help="Simulated duration")
    p.add_argument(
        "--detune",
        type=float,
        default=0.0,
        help="Singer offset from the target in semitones",
    )
    p.add_argument("--fps", type=float, default=60.0, help="Update loop rate")
    p.add_argument("--sample-rate", type=int, default=DEFAULT_DETECTOR_CONFIG.sample_rate)
    p.add_argument("--frame-size", type=int, default=2048, help="Samples per analysis frame")
    p.add_argument(
        "--silence-every",
        type=float,
        default=0.0,
        help="Seconds between silent gaps (0 = never silent)",
    )
    p.add_argument("--silence-for", type=float, default=0.5, help="Length of each silent gap")
    p.add_argument("--seed", type=int, default=None, help="Seed for target selection")
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return p.parse_args(argv)


def _is_silent(t_s: float, every_s: float, gap_s: float) -> bool:
    if every_s <= 0:
        return False
    return (t_s % every_s) >= max(every_s - gap_s, 0.0)


def _log_cue(sample_rate: int) -> Callable[[tuple[CueNote, ...]], None]:
    def play(notes: tuple[CueNote, ...]) -> None:
        audio = render_cue(notes, sample_rate)
        logger.info(
            "Cue: %s (%.2fs rendered)",
            " ".join(n.note for n in notes),
            len(audio) / sample_rate,
        )

    return play


def _status_line(snap: SessionSnapshot) -> str:
    target = snap.current_target.note_name if snap.current_target else "-"
    score = "-" if snap.score is None else f"{snap.score:.3f}"
    error = "-" if snap.last_error is None else f"{snap.last_error:.2f}"
    return (
        f"t={snap.survival_time_s:6.2f}s phase={snap.phase.value:<9} "
        f"state={snap.state.value:<8} target={target:<4} err={error:>6} "
        f"energy={snap.energy:.2f} {snap.scoring.value}={score}"
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    if args.seconds <= 0 or args.fps <= 0 or args.frame_size < 256:
        logger.error("--seconds and --fps must be positive, --frame-size at least 256")
        return 2

    mode = GameMode(args.mode)
    preset = args.preset or ("creature" if mode == GameMode.SIMPLE else "sequence")
    try:
        estimator = PitchEstimator().configure(args.sample_rate)
        config = get_preset(preset)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    config = replace(config, default_dt_ms=1000.0 / args.fps)

    session = GameSession(
        config,
        cue_player=_log_cue(args.sample_rate),
        rng=random.Random(args.seed),
    )
    if mode == GameMode.SIMPLE:
        session.start_game()
    else:
        session.start_sequence_game()

    dt_ms = 1000.0 / args.fps
    frame_s = args.frame_size / args.sample_rate
    n_ticks = int(math.ceil(args.seconds * args.fps))
    log_every = max(int(args.fps // 2), 1)
    voiced_frames = 0
    last_phase = session.phase

    snap = session.snapshot()
    for i in range(n_ticks):
        t_s = i * dt_ms / 1000.0
        frequencies: tuple[float, ...] = ()
        target = session.current_target
        if (
            session.phase == GamePhase.PLAYING
            and target is not None
            and not _is_silent(t_s, args.silence_every, args.silence_for)
        ):
            singer_hz = target.frequency_hz * 2.0 ** (args.detune / 12.0)
            frame = render_note(
                singer_hz,
                frame_s,
                args.sample_rate,
                amplitude=0.5,
                attack_s=0.0,
                release_s=0.0,
                phase=2.0 * math.pi * singer_hz * t_s,
            )
            frequencies = estimator.estimate(frame, max_voices=config.max_voices)
            if frequencies:
                voiced_frames += 1

        snap = session.tick(frequencies, dt_ms)
        if snap.phase != last_phase or i % log_every == 0:
            logger.info("%s", _status_line(snap))
            last_phase = snap.phase
        if snap.is_game_over:
            break

    print()
    print("=" * 65)
    print(f"  Mode:            {mode.value} ({preset} preset)")
    print(f"  Final phase:     {snap.phase.value}")
    print(f"  Final state:     {snap.state.value}")
    print(f"  Survival time:   {snap.survival_time_s:.2f}s")
    print(f"  {snap.scoring.value.capitalize():<15}  {snap.score:.3f}")
    print(f"  Voiced frames:   {voiced_frames}")
    print("=" * 65)
    return 0


if __name__ == "__main__":
    sys.exit(main())
