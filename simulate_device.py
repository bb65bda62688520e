"""
ESP32 Sensor Simulator

Posts heart rate / temperature / GSR readings the way the wearable does, every
few seconds, and prints the stress level the backend derived.
"""
import os
import random
import signal
import sys
import time
from datetime import datetime, timezone

import requests

# Configuration from ENV
URL = os.getenv("INGESTION_URL", "http://localhost:8000/api/receive-sensor-data")
SAMPLE_INTERVAL_SECONDS = float(os.getenv("SAMPLE_INTERVAL_SECONDS", "3"))


def handle_sigterm(*args):
    print("\nSimulation Stopped.")
    sys.exit(0)


def generate_reading(mode):
    """Returns a request body for the given mode: NORMAL, ELEVATED or HIGH."""
    if mode == "HIGH":
        heart_rate = random.randint(102, 130)
        temperature = random.uniform(37.0, 38.2)
        gsr = random.uniform(8.0, 15.0)
    elif mode == "ELEVATED":
        heart_rate = random.randint(82, 99)
        temperature = random.uniform(36.6, 37.4)
        gsr = random.uniform(4.0, 8.0)
    else:
        heart_rate = random.randint(60, 78)
        temperature = random.uniform(36.1, 36.9)
        gsr = random.uniform(1.0, 4.0)

    return {
        "heart_rate": heart_rate,
        "temperature": round(temperature, 1),
        "gsr_value": round(gsr, 2),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run_simulation():
    print(f"Starting Sensor Simulation -> {URL}")
    print("Press Ctrl+C to stop.")

    counter = 0
    while True:
        # Change mode occasionally for demo
        counter += 1
        if counter % 10 == 0:
            mode = "HIGH"
        elif counter % 4 == 0:
            mode = "ELEVATED"
        else:
            mode = "NORMAL"

        data = generate_reading(mode)
        try:
            resp = requests.post(URL, json=data, timeout=5)
            if resp.status_code != 200:
                print(f"Error: {resp.status_code} {resp.text}")
            else:
                prediction = resp.json()["prediction"]
                print(
                    f"Sent -> Mode: {mode:<9} | HR: {data['heart_rate']:>3} | "
                    f"Temp: {data['temperature']:.1f} | GSR: {data['gsr_value']:.2f} | "
                    f"Stress: {prediction['stress_level']} ({prediction['confidence']})"
                )
        except requests.exceptions.RequestException as e:
            print(f"Connection Error: {e}")

        time.sleep(SAMPLE_INTERVAL_SECONDS)


if __name__ == "__main__":
    signal.signal(signal.SIGTERM, handle_sigterm)
    signal.signal(signal.SIGINT, handle_sigterm)
    run_simulation()
