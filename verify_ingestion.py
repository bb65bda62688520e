#!/usr/bin/env python3
"""
Live check against a running Stress Sensor API.

Posts the threshold boundary readings and checks the labels that come back,
plus the preflight, method and socket.io handshake behaviour.
"""
import os
import sys
import time

import requests

BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
URL = f"{BASE_URL}/api/receive-sensor-data"

SCENARIOS = [
    ("HR 101 / 37.0", {"heart_rate": 101, "temperature": 37.0}, "high"),
    ("HR 100 / 37.5", {"heart_rate": 100, "temperature": 37.5}, "medium"),
    ("HR 80 / 37.0", {"heart_rate": 80, "temperature": 37.0}, "low"),
    ("HR 150 / 20.0", {"heart_rate": 150, "temperature": 20.0}, "high"),
    ("string values", {"heart_rate": "85", "temperature": "36.4", "gsr_value": "3.2"}, "medium"),
]


def check(name, passed, detail=""):
    status = "✅" if passed else "❌"
    print(f"{status} [{name}] {detail}")
    return passed


def check_scenario(name, body, expected):
    try:
        resp = requests.post(URL, json=body, timeout=5)
    except requests.exceptions.ConnectionError:
        return check(name, False, "Connection Error! Is the API running?")

    if resp.status_code != 200:
        return check(name, False, f"Status: {resp.status_code}, Response: {resp.text}")

    level = resp.json()["prediction"]["stress_level"]
    return check(name, level == expected, f"stress_level={level} expected={expected}")


def check_validation():
    resp = requests.post(URL, json={"heart_rate": "not-a-number", "temperature": 36.5}, timeout=5)
    return check("invalid heart_rate", resp.status_code == 400, f"Status: {resp.status_code} {resp.text}")


def check_not_idempotent():
    body = {"heart_rate": 72, "temperature": 36.6}
    first = requests.post(URL, json=body, timeout=5).json()["data"]["id"]
    second = requests.post(URL, json=body, timeout=5).json()["data"]["id"]
    return check("duplicate body", first != second, f"ids {first} / {second}")


def check_preflight():
    resp = requests.options(URL, timeout=5)
    passed = (
        resp.status_code == 200
        and resp.content == b""
        and resp.headers.get("Access-Control-Allow-Origin") == "*"
    )
    return check("preflight", passed, f"Status: {resp.status_code}")


def check_method_not_allowed():
    resp = requests.get(URL, timeout=5)
    passed = resp.status_code == 405 and resp.json() == {"error": "Method not allowed"}
    return check("GET rejected", passed, f"Status: {resp.status_code}")


def check_socket_handshake():
    params = {"EIO": "4", "transport": "polling", "t": str(time.time())}
    resp = requests.get(f"{BASE_URL}/socket.io/", params=params, timeout=5)
    return check("socket.io handshake", resp.status_code == 200, f"Status: {resp.status_code}")


def main():
    print("=" * 50)
    print("Stress Sensor API live check")
    print("=" * 50)

    try:
        health = requests.get(f"{BASE_URL}/health", timeout=3).json()
    except requests.exceptions.RequestException as e:
        print(f"❌ API not reachable at {BASE_URL}: {e}")
        return 1
    print(f"Health: {health['status']} | Store: {health['store']}")

    results = [check_scenario(*scenario) for scenario in SCENARIOS]
    results.append(check_validation())
    results.append(check_not_idempotent())
    results.append(check_preflight())
    results.append(check_method_not_allowed())
    results.append(check_socket_handshake())

    print("=" * 50)
    print(f"{sum(results)}/{len(results)} checks passed")
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
