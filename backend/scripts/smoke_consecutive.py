# Smoke test for a base service followed by a consecutive Sunday service
# Run:  python scripts/smoke_consecutive.py   (API running, tally empty)
# If needed: pip install requests

import os, sys
import requests

BASE = os.getenv("BASE_URL", "http://127.0.0.1:8000")
USHER = os.getenv("SMOKE_USHER", "Smoke Ujier")

def call(method, path, **kw):
    r = requests.request(method, f"{BASE}{path}", timeout=10, **kw)
    if r.status_code >= 400:
        print(f"✗ {method} {path} -> {r.status_code} {r.text}")
        sys.exit(1)
    return r.json()

def main():
    print(f"→ Using API {BASE}")

    view = call("GET", "/conteo")
    if view["mode"] != "normal" or view["totals"]["total"]:
        print(f"✗ Tally is not empty (mode={view['mode']}, total={view['totals']['total']}); POST /conteo/clear first")
        sys.exit(1)

    # 1) Evangelismo: 3 brothers by count, one named sympathizer
    call("PATCH", "/conteo", json={"service_type": "evangelismo", "selected_ushers": [USHER], "usher_choice": USHER})
    call("PUT", "/conteo/counters/brothers", json={"value": 3})
    call("POST", "/conteo/attendees/sympathizers", json={"attendees": [{"id": "smoke-s1", "name": "SMOKE Simpatizante"}]})
    saved = call("POST", "/conteo/save")
    assert saved["awaiting_decision"], saved
    print(f"✓ Base service saved {saved['record_id']} (total {saved['record']['total']})")

    # 2) Continue into dominical; base carries over
    view = call("POST", "/conteo/consecutive/continue")
    assert view["mode"] == "consecutive", view["mode"]
    assert view["totals"]["total"] == 4, view["totals"]
    print("✓ Consecutive mode, carried total 4")

    # 3) Two more brothers, save the combined record
    call("PUT", "/conteo/counters/brothers", json={"value": 2})
    saved2 = call("POST", "/conteo/save")
    rec = saved2["record"]
    assert rec["total"] == 6, rec
    assert rec["totals"]["brothers"] == 5, rec["totals"]
    assert saved2["view"]["mode"] == "normal"
    print(f"✓ Dominical saved {saved2['record_id']} (total {rec['total']})")

    # 4) Edit the dominical record and commit a correction
    call("POST", f"/conteo/edit/{saved2['record_id']}")
    call("POST", "/conteo/counters/brothers/increment")
    upd = call("POST", "/conteo/save")
    assert upd["created"] is False and upd["navigate_to"] == "/historial", upd
    again = call("GET", f"/historial/{saved2['record_id']}")
    assert again["total"] == 7, again
    print("✓ Edit committed in place (total 7)")

    print("✓ Smoke OK")

if __name__ == "__main__":
    main()
