"""
Minimal Python client: previews a student's SIWES grade and optionally commits it.
Requires: pip install requests
Usage:
  python client_example.py --host http://127.0.0.1:8000 --user supervisor --password secret --student 1 [--commit]
"""

import argparse
import json

import requests


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="http://127.0.0.1:8000")
    parser.add_argument("--user", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--student", type=int, required=True)
    parser.add_argument("--override", type=float, default=None, help="weekly reports score override (0-15)")
    parser.add_argument("--remarks", default="")
    parser.add_argument("--commit", action="store_true", help="commit the grade (locks the student)")
    args = parser.parse_args()

    session = requests.Session()
    # Basic auth for the example
    session.auth = (args.user, args.password)

    resp = session.get(f"{args.host}/api/grading/{args.student}/preview/")
    resp.raise_for_status()
    preview = resp.json()
    breakdown = preview["breakdown"]
    print(f"{preview['student']['matricNo']} {preview['student']['fullName']}")
    for key in ("attendance", "weeklyReports", "supervisorApproval", "total"):
        print(f"  {key:<20} {breakdown[key]['score']:>6} / {breakdown[key]['max']}")
    print(f"  grade                {preview['grade']}")

    if not args.commit:
        return

    body = {"remarks": args.remarks}
    if args.override is not None:
        body["weekly_reports_override"] = args.override
    resp = session.post(f"{args.host}/api/grading/{args.student}/commit/", json=body)
    if resp.status_code >= 400:
        error = resp.json()
        print(f"Commit refused ({resp.status_code} {error.get('code')}): {error.get('detail')}")
        return
    print("Committed:")
    print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
