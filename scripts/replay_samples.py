"""Replay a recorded sample trace through a detector.

Usage examples:
  python scripts/replay_samples.py --detector dryer --file traces/dryer_cycle.csv
  python scripts/replay_samples.py --detector mailbox --file traces/door.csv --submit --user-id <uid>

The CSV holds one sample per row, either ``value`` or ``seconds,value``.
Without a time column samples are spaced by the detector's sampling interval.
With --submit each event is POSTed to the relay exactly as a phone would.
"""
from __future__ import annotations
import argparse
import csv
import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))
from sensor_relay.core.logging_config import setup_logging  # noqa: E402
from sensor_relay.detectors import DETECTORS, SoundDetector  # noqa: E402
from sensor_relay.client import RelayClient, ListeningSession  # noqa: E402


def parse_args():
    p = argparse.ArgumentParser(description="Replay a sample trace through a detector")
    p.add_argument("--detector", required=True, choices=sorted(DETECTORS), help="Detector to run")
    p.add_argument("--file", required=True, help="CSV trace: value or seconds,value per row")
    p.add_argument("--threshold", type=float, default=None, help="Sound threshold (0.1..1.0)")
    p.add_argument("--submit", action="store_true", help="POST events to the relay API")
    p.add_argument("--api-url", default=os.getenv("RELAY_API_URL", "http://localhost:8000"))
    p.add_argument("--user-id", default=os.getenv("RELAY_USER_ID"), help="Target uid for --submit")
    p.add_argument("--id-token", default=os.getenv("RELAY_ID_TOKEN"), help="Bearer token when event auth is on")
    return p.parse_args()


def load_trace(path: str, interval: float):
    samples = []
    with open(path, "r", encoding="utf-8", newline="") as f:
        for i, row in enumerate(csv.reader(f)):
            if not row or row[0].startswith("#"):
                continue
            try:
                if len(row) >= 2:
                    samples.append((float(row[0]), float(row[1])))
                else:
                    samples.append((i * interval, float(row[0])))
            except ValueError:
                # header row
                continue
    return samples


def main():
    args = parse_args()
    setup_logging()
    if args.submit and not args.user_id:
        print("ERROR: --submit needs --user-id or RELAY_USER_ID", file=sys.stderr)
        sys.exit(2)

    cls = DETECTORS[args.detector]
    detector = cls(threshold=args.threshold) if cls is SoundDetector else cls()
    samples = load_trace(args.file, detector.interval)
    print(f"[replay_samples] {len(samples)} samples through {detector.name}")

    if args.submit:
        client = RelayClient(base_url=args.api_url, id_token=args.id_token)
        session = ListeningSession(detector, client, args.user_id)
        detector.subscribe(session.handle_event)

    detector.start()
    events = 0
    for t, value in samples:
        event = detector.on_sample(value, now=t)
        if event:
            events += 1
            print(f"  t={t:8.2f}s  {event.kind:<8}  level={event.level:.4f}")
    detector.stop()

    status = detector.latest_status()
    print(f"[replay_samples] {events} event(s); final state {status.run_state.value}, "
          f"mean={status.mean:.4f} variance={status.variance:.5f}")


if __name__ == "__main__":
    main()
