"""
CLI to replay a recorded perception stream through the engine -> report JSON.

Input is JSON lines, one SignalSample per line, each with a ``ts`` in ms:
    {"ts": 0, "faces": [], "objects": [], "audio_level": 12.0}

Events go to the local database (--db) or to a running API (--api).
"""
from __future__ import annotations
import argparse, json, logging
from typing import Iterator, List

from core.client import HttpLedger
from core.config import Settings
from core.dispatcher import EventDispatcher
from core.engine import DetectionEngine, ManualClock
from core.ledger import ScoreLedger
from core.models import SignalSample
from core.report import summarize_report


def read_samples(path: str) -> Iterator[SignalSample]:
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield SignalSample.model_validate_json(line)


def replay(samples: List[SignalSample], ledger, candidate: str, settings: Settings) -> dict:
    """Feed samples at their recorded times, ageing timers every tick in between."""
    clock = ManualClock()
    session = ledger.create_session(candidate)
    engine = DetectionEngine(EventDispatcher(ledger, session.id), settings, clock=clock)

    step = settings.TICK_INTERVAL_S * 1000.0
    for sample in samples:
        ts = float(sample.ts or 0.0)
        while clock.now() + step < ts:
            clock.advance(step)
            engine.age()
        clock.set(max(clock.now(), ts))
        engine.process(sample)

    engine.stop()
    ledger.end_session(session.id)
    report = ledger.get_report(session.id)
    return {
        "report": report.model_dump(mode="json", by_alias=True),
        "summary": summarize_report(report).model_dump(mode="json", by_alias=True),
    }


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--samples", required=True, help="Path to JSON-lines sample stream")
    p.add_argument("--candidate", default="Candidate", help="Candidate name")
    p.add_argument("--db", default=None, help="Database URL (default: Settings.DATABASE_URL)")
    p.add_argument("--api", default=None, help="Post events to a running API instead")
    p.add_argument("--out", default=None, help="Optional path to write the JSON result")
    args = p.parse_args()

    settings = Settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    if args.api:
        ledger = HttpLedger(args.api, settings.HTTP_TIMEOUT_SECONDS)
    else:
        ledger = ScoreLedger(args.db or settings.DATABASE_URL, settings.DB_TIMEOUT_SECONDS)
        ledger.init_schema()

    result = replay(list(read_samples(args.samples)), ledger, args.candidate, settings)
    print(json.dumps(result, indent=2, ensure_ascii=False))

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        print(f"Report written to {args.out}")

if __name__ == "__main__":
    main()
