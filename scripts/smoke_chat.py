#!/usr/bin/env python3
"""Smoke test for the fallback chat endpoint against real providers.

Usage:
  python scripts/smoke_chat.py --base-url http://127.0.0.1:8000 --provider ollama

Keys are read from SCREENTUTOR_<PROVIDER>_API_KEY (e.g. SCREENTUTOR_GROQ_API_KEY).
Pass --provider more than once to build a chain; the first one is primary.
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

import httpx


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="ScreenTutor fallback chat smoke test")
    parser.add_argument("--base-url", default=os.getenv("SCREENTUTOR_BASE_URL", "http://127.0.0.1:8000"))
    parser.add_argument("--provider", action="append", dest="providers", default=None)
    parser.add_argument("--message", default='Say "OK" and nothing else.')
    parser.add_argument("--timeout", type=float, default=60.0)
    parser.add_argument("--probe", action="store_true", help="Run health probes before chatting")
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args()


def exit_with(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def safe_json(response: httpx.Response) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError:
        return {}


def provider_config(provider_id: str) -> dict[str, Any]:
    env_name = f"SCREENTUTOR_{provider_id.upper().replace('-', '_')}_API_KEY"
    return {"id": provider_id, "api_key": os.getenv(env_name, ""), "enabled": True}


def main() -> None:
    args = parse_args()
    providers = [provider_config(p) for p in (args.providers or ["ollama"])]
    client = httpx.Client(base_url=args.base_url.rstrip("/"), timeout=args.timeout)

    try:
        health = client.get("/health")
    except httpx.HTTPError as exc:
        exit_with(f"Health check failed: {exc}")

    if health.status_code != 200:
        exit_with(f"Health check failed: HTTP {health.status_code} {health.text}")

    if args.probe:
        probe = client.post("/providers/health", json={"providers": providers})
        if probe.status_code != 200:
            exit_with(f"Provider probe failed: HTTP {probe.status_code} {probe.text}")
        for provider_id, status in safe_json(probe).items():
            print(f"{provider_id}: {status.get('status')} {status.get('error') or ''}".rstrip())

    payload = {
        "providers": providers,
        "primary_provider_id": providers[0]["id"],
        "messages": [{"role": "user", "content": args.message}],
        "max_tokens": 32,
    }
    response = client.post("/chat", json=payload)
    if response.status_code != 200:
        exit_with(f"Chat request failed: HTTP {response.status_code} {response.text}")

    data = safe_json(response)
    result = data.get("result") or {}
    if not args.quiet:
        print(data.get("attempt_log", ""))
    if not result.get("success"):
        exit_with(f"All providers failed: {json.dumps(result.get('error'), indent=2)}")

    choices = result["response"].get("choices") or []
    text = choices[0]["message"]["content"] if choices else ""
    print(f"[{result.get('provider_id')}] {text}")


if __name__ == "__main__":
    main()
