import argparse
import json
import sys
from typing import Any, Dict, List, Optional

import httpx


DEFAULT_API_BASE = "http://127.0.0.1:3001"


def _join_url(base: str, path: str) -> str:
    return base.rstrip("/") + path


def _error_text(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("error") or resp.text)
    except Exception:
        return resp.text


def _print_results(data: Dict[str, Any]) -> None:
    results = data.get("results") or []
    if not results:
        print("No datasets found for your query.")
        return
    print(f"Source: {data.get('source')} ({len(results)} results)")
    for item in results:
        tags = ", ".join((item.get("tags") or [])[:3])
        print(f"- {item.get('title')} [{item.get('id')}]")
        print(f"    by {item.get('author')} | updated {item.get('lastUpdated')} | {item.get('url')}")
        if tags:
            print(f"    tags: {tags}")


def _post(base: str, path: str, payload: Dict[str, Any], timeout: float) -> Optional[Dict[str, Any]]:
    with httpx.Client() as client:
        resp = client.post(_join_url(base, path), json=payload, timeout=timeout)
        if resp.status_code >= 400:
            print(f"Request failed: HTTP {resp.status_code}: {_error_text(resp)}")
            return None
        return resp.json()


def run_search(args: argparse.Namespace) -> int:
    data = _post(args.base_url, "/api/search", {"query": " ".join(args.query)}, args.timeout)
    if data is None:
        return 1
    if args.json:
        print(json.dumps(data, indent=2))
    else:
        _print_results(data)
    return 0


def run_details(args: argparse.Namespace) -> int:
    data = _post(args.base_url, "/api/details", {"id": args.id, "source": args.source}, args.timeout)
    if data is None:
        return 1
    print(json.dumps(data, indent=2))
    return 0


def run_route(args: argparse.Namespace) -> int:
    data = _post(args.base_url, "/api/route", {"query": " ".join(args.query)}, args.timeout)
    if data is None:
        return 1
    print(f"source={data.get('source')} keywords={data.get('keywords')!r}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Dataset Metadata Explorer CLI")
    parser.add_argument("--base-url", default=DEFAULT_API_BASE, help="API base URL")
    parser.add_argument("--timeout", type=float, default=120.0, help="Request timeout in seconds")
    subparsers = parser.add_subparsers(dest="command")

    search = subparsers.add_parser("search", help="Route a free-text query and search the chosen catalog")
    search.add_argument("--json", action="store_true", help="Print the raw JSON response")
    search.add_argument("query", nargs="+", help="Free-text query")

    details = subparsers.add_parser("details", help="Fetch details for one dataset")
    details.add_argument("source", help="Catalog label, e.g. Kaggle or CKAN")
    details.add_argument("id", help="Dataset identifier")

    route = subparsers.add_parser("route", help="Show the routing decision only")
    route.add_argument("query", nargs="+", help="Free-text query")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "search":
        return run_search(args)
    if args.command == "details":
        return run_details(args)
    if args.command == "route":
        return run_route(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
