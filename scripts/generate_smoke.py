#!/usr/bin/env python3
"""Generate one comic against a running server and write the panels to disk.

Usage: python scripts/generate_smoke.py "a cat learns to fly" [style] [panel_count]
Writes PNGs into storage/smoke/
"""

import base64
import json
import sys
from pathlib import Path

import httpx

BASE_URL = "http://127.0.0.1:8000"
OUT_DIR = Path(__file__).resolve().parent.parent / "storage" / "smoke"


def main():
    if len(sys.argv) < 2:
        print(__doc__, file=sys.stderr)
        sys.exit(2)
    prompt = sys.argv[1]
    style = sys.argv[2] if len(sys.argv) > 2 else "manga"
    panel_count = int(sys.argv[3]) if len(sys.argv) > 3 else 4

    client = httpx.Client(base_url=BASE_URL, timeout=300.0)

    resp = client.post("/db/init")
    print(f"DB_INIT={resp.json()}")

    resp = client.post(
        "/generate-comic",
        json={"prompt": prompt, "style": style, "panelCount": panel_count},
    )
    if resp.status_code != 200:
        print(f"Generation failed: {resp.status_code} {resp.text}", file=sys.stderr)
        sys.exit(1)
    data = resp.json()

    OUT_DIR.mkdir(parents=True, exist_ok=True)
    for script, image in zip(data["scripts"], data["images"]):
        out = OUT_DIR / f"panel-{script['panelNumber']}.png"
        out.write_bytes(base64.b64decode(image))
        print(f"Wrote {out}")
    print(json.dumps(data["scripts"], indent=2, ensure_ascii=False))

    comic_id = data.get("comicId")
    if comic_id is None:
        print("Comic was not saved (see server logs)")
        return
    print(f"COMIC_ID={comic_id}")
    detail = client.get(f"/comics/{comic_id}").json()
    print(f"SAVED_PANELS={len(detail['comic']['panels'])}")


if __name__ == "__main__":
    main()
