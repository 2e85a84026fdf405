# scripts/replay_session.py
import argparse
import json
from datetime import UTC
from pathlib import Path

import numpy as np
import pandas as pd
from dateutil import parser as dtp

from presence.core.activity_log import ActivityLog
from presence.core.config import load_config
from presence.core.durations import accumulate, now_utc
from presence.core.events import ActivityKind, make_event
from presence.core.phase import derive_phase
from presence.utils.geo import EARTH_RADIUS_M, Coordinate


def to_utc(ts):
    """
    Her zaman UTC (aware) datetime döndürür.
    - Naive timestamp -> UTC varsayılır.
    - Aware timestamp -> UTC'ye dönüştürülür.
    """
    dt = dtp.parse(str(ts))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def haversine_np(lat0, lon0, lat, lon) -> np.ndarray:
    """Vektörel Haversine (metre); eksik konumlar NaN kalır."""
    la0, lo0 = np.radians(lat0), np.radians(lon0)
    la, lo = np.radians(lat), np.radians(lon)
    a = np.sin((la - la0) / 2) ** 2 + np.cos(la0) * np.cos(la) * np.sin((lo - lo0) / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def load_events(src: Path) -> pd.DataFrame:
    df = pd.read_json(src, lines=True) if src.suffix.lower() == ".jsonl" else pd.read_csv(src)
    for c in ["id", "kind", "timestamp"]:
        if c not in df.columns:
            raise ValueError(f"missing required column: {c}")
    for c in ["lat", "lon", "attachment_ref", "note"]:
        if c not in df.columns:
            df[c] = None
    if "seq" not in df.columns:
        # sıra numarası yoksa dosya sırası kullanılır
        df["seq"] = range(len(df))
    df = df.dropna(subset=["id", "kind", "timestamp"])
    df["timestamp"] = df["timestamp"].map(to_utc)
    return df.sort_values(by=["timestamp", "seq"], kind="stable")


def _opt(v):
    return None if v is None or pd.isna(v) else v


def build_log(df: pd.DataFrame) -> ActivityLog:
    log = ActivityLog()
    for _, r in df.iterrows():
        lat, lon = _opt(r["lat"]), _opt(r["lon"])
        log.add(
            make_event(
                ActivityKind(r["kind"]),
                r["timestamp"],
                int(r["seq"]),
                event_id=str(r["id"]),
                location=None if lat is None or lon is None else Coordinate(float(lat), float(lon)),
                attachment_ref=_opt(r["attachment_ref"]),
                note=_opt(r["note"]),
            )
        )
    return log


def main():
    ap = argparse.ArgumentParser(description="Replay one attendance session export")
    ap.add_argument("--in", dest="inp", required=True, help="event export of one session (JSONL/CSV)")
    ap.add_argument("--config", default="configs/config.json")
    ap.add_argument("--now", default=None, help="evaluation instant (ISO 8601); default: now")
    ap.add_argument("--out", default=None, help="optional JSON report path")
    args = ap.parse_args()

    cfg = load_config(args.config)
    df = load_events(Path(args.inp))
    log = build_log(df)

    clock_ins = df[df["kind"] == ActivityKind.CLOCK_IN.value]
    if clock_ins.empty:
        raise ValueError("export has no clock_in event")
    clock_in = clock_ins["timestamp"].iloc[0]
    now = to_utc(args.now) if args.now else now_utc()

    phase = derive_phase(log.ordered(), strict=False)
    durations = accumulate(log.ordered(), clock_in, now)

    df["distance_m"] = haversine_np(
        cfg.gf_lat0, cfg.gf_lon0, df["lat"].astype("float64"), df["lon"].astype("float64")
    ).round(1)
    df["in_range"] = df["distance_m"] <= cfg.gf_radius_m

    report = {
        "phase": phase.value,
        "durations": durations.as_hhmm(),
        "events": [
            {
                "id": str(r["id"]),
                "kind": r["kind"],
                "timestamp": r["timestamp"].isoformat(timespec="seconds").replace("+00:00", "Z"),
                "distance_m": None if pd.isna(r["distance_m"]) else float(r["distance_m"]),
                "in_range": None if pd.isna(r["distance_m"]) else bool(r["in_range"]),
            }
            for _, r in df.iterrows()
        ],
    }

    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
    else:
        print(json.dumps(report, ensure_ascii=False, indent=2))
    print(f"[OK] phase={phase.value} | total={durations.as_hhmm()['total']} | events={len(log)}")


if __name__ == "__main__":
    main()
