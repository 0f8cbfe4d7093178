#!/usr/bin/env python3
"""
demo_cli.py — Standalone command-line demo
============================================
Feeds a recorded or synthetic sample stream straight into a `ScanSession`,
bypassing the HTTP layer, and prints the outcome.

Usage:
    python demo_cli.py --modality optical --bpm 75 --noise 2 --duration 12
    python demo_cli.py --modality optical --bpm 76 --shadow acoustic --shadow-bpm 78
    python demo_cli.py --csv recording.csv --modality optical

CSV files need a header row naming the sample fields of the modality,
e.g. ``red_mean,green_mean,blue_mean,brightness_mean,timestamp_ms``.

The session clock follows the sample timestamps, so a replay runs as
fast as the CPU allows and the timeout behaves as it would live.

Exit status is 0 only when the scan reaches Completed.
"""

import argparse
import csv
import sys

from acquisition.samples import Modality, sample_from_dict
from engine.results import SessionState
from engine.session import ScanSession, SessionOptions
from utils import synthetic
from utils.logger import get_logger, set_level

logger = get_logger("demo_cli")

_GENERATORS = {
    Modality.OPTICAL: synthetic.optical_samples,
    Modality.ACOUSTIC: synthetic.acoustic_samples,
    Modality.MOTION: synthetic.motion_samples,
}


_RULE = "─" * 60


def banner(title: str, *notes: str) -> None:
    print(f"\n{_RULE}\n  {title}")
    for note in notes:
        print(f"  {note}")
    print(_RULE)


def pretty_print(label: str, value, unit: str = "") -> None:
    print(f"  \033[1;36m{label:<28}\033[0m \033[1;33m{value}\033[0m {unit}")


def load_csv(path: str, modality: Modality) -> list:
    with open(path, newline="") as fh:
        rows = csv.DictReader(fh)
        return [
            sample_from_dict(modality, {k: float(v) for k, v in row.items()})
            for row in rows
        ]


class _SampleClock:
    """Session clock driven by the replayed timestamps (seconds)."""

    def __init__(self):
        self.now_s = 0.0

    def __call__(self) -> float:
        return self.now_s


def main():
    parser = argparse.ArgumentParser(description="Vital-signs estimation CLI demo")
    parser.add_argument("--modality", type=str, default="optical", choices=[m.value for m in Modality])
    parser.add_argument("--csv", type=str, help="Replay samples from a CSV file instead of a synthetic signal")
    parser.add_argument("--bpm", type=float, default=75.0, help="Synthetic heart rate")
    parser.add_argument("--noise", type=float, default=0.0, help="Gaussian noise std added to the pulse channel")
    parser.add_argument("--duration", type=float, default=12.0, help="Synthetic stream length (seconds)")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--shadow", type=str, choices=[m.value for m in Modality],
                        help="Also feed a synthetic stream of this modality as a shadow track")
    parser.add_argument("--shadow-bpm", type=float, default=None)
    parser.add_argument("--timeout", type=float, default=20.0, help="Session timeout (seconds)")
    parser.add_argument("--no-fallback", action="store_true", help="Disable modality fallback")
    parser.add_argument("--verbose", action="store_true", help="DEBUG logging")
    args = parser.parse_args()

    if args.verbose:
        set_level("DEBUG")

    modality = Modality(args.modality)
    if args.csv:
        samples = load_csv(args.csv, modality)
    else:
        samples = _GENERATORS[modality](
            bpm=args.bpm, duration_s=args.duration, noise=args.noise, seed=args.seed,
        )
    if args.shadow:
        shadow = _GENERATORS[Modality(args.shadow)](
            bpm=args.shadow_bpm or args.bpm, duration_s=args.duration, seed=args.seed + 1,
        )
        samples = synthetic.interleave(samples, shadow)

    banner("Vital-signs scan replay", "⚠️  Estimates for wellness use; not a medical device.")
    print(f"\n  Primary      : {modality.value}" + (f" (+ shadow {args.shadow})" if args.shadow else ""))
    print(f"  Source       : {args.csv or 'synthetic'}")
    print(f"  Samples      : {len(samples)}\n")

    clock = _SampleClock()
    if samples:
        clock.now_s = samples[0].timestamp_ms / 1000.0
    session = ScanSession(
        SessionOptions(modality=modality, timeout_s=args.timeout, allow_fallback=not args.no_fallback),
        clock=clock,
    )

    # ── Replay ───────────────────────────────────────────────────────────
    last_live = None
    for sample in samples:
        clock.now_s = sample.timestamp_ms / 1000.0
        result = session.ingest(sample)
        if result.preliminary is not None and result.preliminary.bpm != last_live:
            last_live = result.preliminary.bpm
            print(f"    live  {clock.now_s:5.1f} s   {last_live} BPM  "
                  f"(conf {result.preliminary.confidence_pct}%)")
        if result.switched_to is not None:
            print(f"    ↪ switched to {result.switched_to.value}")
        if result.state in (SessionState.COMPLETED, SessionState.FAILED):
            break

    status = session.poll()

    banner(f"Scan finished: {status.state.value}")
    pretty_print("Elapsed", f"{status.elapsed_s:.1f}", "s")
    pretty_print("Modalities used", " → ".join(m.value for m in status.modality_history))

    if status.heart_rate is not None:
        hr = status.heart_rate
        print("\n  ── Heart Rate ──")
        pretty_print("Heart Rate", hr.bpm, "BPM")
        pretty_print("  Method", hr.method)
        pretty_print("  Confidence", hr.confidence_pct, f"% ({hr.quality_tier})")
        pretty_print("  Irregularity", hr.irregularity_pct, "%")
        for m, est in status.track_results.items():
            pretty_print(f"  ({m.value})", est.bpm, f"BPM, conf {est.confidence_pct}%")

        print("\n  ── Heart Rate Variability ──")
        if hr.hrv:
            pretty_print("SDNN", hr.hrv["sdnn_ms"], "ms")
            pretty_print("RMSSD", hr.hrv["rmssd_ms"], "ms")
            pretty_print("pNN50", hr.hrv["pnn50"], "%")
            pretty_print("Mean RR", hr.hrv["mean_rr_ms"], "ms")
        else:
            print("    (too few clean beats for variability figures)")

    if status.oxygenation is not None:
        print("\n  ── Blood Oxygen (ESTIMATED) ──")
        pretty_print("SpO2", status.oxygenation.percentage, "%")
        pretty_print("  Confidence", status.oxygenation.confidence_pct, "%")
        pretty_print("  Ratio of ratios", status.oxygenation.ratio_of_ratios)

    if status.alerts:
        print("\n  ── Alerts ──")
        for alert in status.alerts:
            print(f"    ⚠️  {alert}")

    if status.failure is not None:
        print(f"\n  ERROR: {status.failure.reason.value}: {status.failure.message}")

    banner("⚠️  Every figure above is an estimate.", "Never base a diagnosis or treatment on it.")

    if status.state is not SessionState.COMPLETED:
        sys.exit(1)


if __name__ == "__main__":
    main()
