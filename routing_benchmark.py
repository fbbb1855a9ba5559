import argparse
import re
from typing import Any, Dict, List, Optional

import httpx


TESTS: List[Dict[str, Any]] = [
    {"name": "kaggle_1", "query": "kaggle data on climate change", "source": "Kaggle", "expect": r"climate"},
    {"name": "kaggle_2", "query": "find kaggle datasets about house prices", "source": "Kaggle", "expect": r"house"},
    {"name": "kaggle_3", "query": "Kaggle titanic passenger data", "source": "Kaggle", "expect": r"titanic"},
    {"name": "ckan_1", "query": "new york covid data", "source": "CKAN", "expect": r"covid"},
    {"name": "ckan_2", "query": "crime rates in chicago", "source": "CKAN", "expect": r"crime"},
    {"name": "ckan_3", "query": "US census population by county", "source": "CKAN", "expect": r"census|population"},
    {"name": "ckan_4", "query": "city budget spending reports", "source": "CKAN", "expect": r"budget"},
    {"name": "hf_1", "query": "machine learning datasets for text classification", "source": "HuggingFace", "expect": r"text"},
    {"name": "hf_2", "query": "Show me audio datasets on HuggingFace", "source": "HuggingFace", "expect": r"audio"},
    {"name": "hf_3", "query": "image segmentation training data", "source": "HuggingFace", "expect": r"segmentation"},
    {"name": "hf_4", "query": "NLP corpora for sentiment analysis", "source": "HuggingFace", "expect": r"sentiment"},
]


def evaluate_decision(decision: Dict[str, Any], test: Dict[str, Any]) -> Optional[str]:
    """Return a failure reason, or None when the decision matches."""
    source = str(decision.get("source") or "")
    keywords = str(decision.get("keywords") or "")
    if source.lower() != test["source"].lower():
        return f"source={source!r} expected={test['source']!r}"
    if not re.search(test["expect"], keywords, re.IGNORECASE):
        return f"keywords={keywords!r}"
    if len(keywords.split()) > 4:
        return f"keywords too long ({keywords!r})"
    return None


def resolve_base_url(base_url: Optional[str], port: Optional[int]) -> str:
    if base_url:
        return base_url.rstrip("/")
    port_value = port or 3001
    return f"http://127.0.0.1:{port_value}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Measure query routing accuracy against a running server.")
    parser.add_argument("--base-url", help="Base URL (ex: http://127.0.0.1:3001).")
    parser.add_argument("--port", type=int, help="Port override if base URL is not set.")
    parser.add_argument("--timeout", type=float, default=60.0, help="Per-query timeout in seconds.")
    args = parser.parse_args()

    base_url = resolve_base_url(args.base_url, args.port)

    total = 0
    passed = 0
    failures: List[str] = []

    with httpx.Client(timeout=args.timeout) as client:
        for test in TESTS:
            total += 1
            name = test["name"]
            try:
                resp = client.post(f"{base_url}/api/route", json={"query": test["query"]})
                resp.raise_for_status()
                decision = resp.json()
            except Exception as exc:
                failures.append(f"{name}: error ({exc})")
                print(f"{name}: ERROR")
                continue
            reason = evaluate_decision(decision, test)
            if reason is None:
                passed += 1
                print(f"{name}: PASS")
            else:
                failures.append(f"{name}: FAIL ({reason})")
                print(f"{name}: FAIL")

    accuracy = (passed / total * 100.0) if total else 0.0
    print(f"Accuracy: {passed}/{total} ({accuracy:.1f}%)")
    if failures:
        print("Failures:")
        for failure in failures:
            print(f"- {failure}")
    return 0 if passed == total else 1


if __name__ == "__main__":
    raise SystemExit(main())
