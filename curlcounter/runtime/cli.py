# curlcounter/runtime/cli.py
from __future__ import annotations
import json
import logging
import sys
from typing import IO, Iterator, Optional, Tuple

from curlcounter.common.config import ConfigError, CurlConfig
from curlcounter.counter.session import RepSessionManager

logger = logging.getLogger(__name__)


def iter_frames(stream: IO[str]) -> Iterator[Tuple[Optional[float], list]]:
    """Yield (ts, landmarks) from JSON lines; blank and malformed lines are skipped."""
    for lineno, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            frame = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("line %d: invalid JSON (%s)", lineno, e)
            continue
        if not isinstance(frame, dict):
            logger.warning("line %d: expected an object", lineno)
            continue
        ts = frame.get("ts")
        if ts is not None and (isinstance(ts, bool) or not isinstance(ts, (int, float))):
            logger.warning("line %d: ts must be a number, got %r", lineno, ts)
            continue
        landmarks = frame.get("landmarks") or []
        if not isinstance(landmarks, list):
            logger.warning("line %d: landmarks must be a list", lineno)
            continue
        yield ts, landmarks


def replay(stream: IO[str], cfg: Optional[CurlConfig] = None, out: Optional[IO[str]] = None) -> int:
    if out is None:
        out = sys.stdout
    mgr = RepSessionManager(cfg=cfg)
    mgr.start()
    for ts, landmarks in iter_frames(stream):
        result = mgr.push_landmarks(landmarks, ts)
        if result is not None and result.rep_completed:
            sides = "+".join(result.completed_limbs)
            print(f"rep {mgr.count} ({sides}) at ts={ts}", file=out, flush=True)
    total = mgr.stop()
    print(f"total reps: {total}", file=out, flush=True)
    return total


def main(argv: Optional[list] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.WARNING)
    try:
        cfg = CurlConfig.from_env()
    except ConfigError as e:
        print("Error:", e, file=sys.stderr)
        return 2
    if not argv or argv[0] == "-":
        replay(sys.stdin, cfg)
        return 0
    try:
        with open(argv[0], encoding="utf-8") as fh:
            replay(fh, cfg)
    except OSError as e:
        print("Error:", e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
